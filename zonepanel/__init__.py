"""Framework-free request handlers for a PowerDNS web panel: zones, records, metadata, TSIG keys, users and health checks."""

__version__ = "0.1.0"