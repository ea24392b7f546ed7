# zonepanel

The request handlers behind a small web panel for an authoritative DNS server
that is driven through the PowerDNS HTTP API. They cover zones, records, zone
metadata, TSIG keys, panel users and health checks. The handlers are not tied
to any web framework. Each one takes a `Request` and returns a `Response`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `zonepanel.core` holds the shared types and the base class:
  - `Request`, which has `form_value`, `form_values`, `query_value` and
    `path_value`. `form_value` falls back to the query string when the body
    does not contain the field.
  - `Response`, which has `json()`.
  - `redirect(location)`, which builds a 303 response.
  - `json_response(status, payload)`. It encodes dataclass values field by
    field.
  - The data classes `User`, `RecordInfo`, `RRSet`, `TSIGKey`, `Metadata`,
    `ZoneCreateRequest` and `ActivityLog`.
  - `HandlerBase`, which provides `render`, `render_error`, `log_activity`,
    `health_ready` and `health_live`.
  - `record_types()` and `metadata_kinds()`.
- `zonepanel.pagination` provides `paginate(items, page, per_page)`, which
  returns a list and a `PageInfo`. A `per_page` of zero or less returns every
  item as one page. A page number outside the existing pages is clamped into
  range.
- `zonepanel.zones` provides `ZoneViews`. Its views are:
  - list zones, with a case-insensitive name search and paging. Paging reads
    the `page` and `perPage` query values, and `perPage` defaults to 10.
  - create, view, delete, rectify and notify zones.
  - set and delete metadata. Metadata values are given one per line.
  - `zone_activity_logs(zone_id)` returns the 50 newest log entries for a zone.
- `zonepanel.records` provides `RecordViews`, `RecordForm` and
  `parse_record_form`. Its views are:
  - a create page and a create action.
  - an edit page, an update action and an inline JSON update.
  - a batch create action and a delete action.

  A missing or non-positive TTL becomes 3600.
- `zonepanel.tsigkeys` provides `TSIGKeyViews`, `tsig_algorithms()` and
  `generate_tsig_secret()`. `generate_tsig_secret()` returns 64 random bytes
  in base64, which is 88 characters. It is used when a key is created without
  key material.
- `zonepanel.users` provides `UserViews`. Its views list, create, edit, update
  and delete users. Passwords are hashed with bcrypt.
  - A cost below 4 falls back to 10.
  - A password longer than 72 bytes is rejected.
  - Database changes run in one transaction, which is rolled back on failure.
  - An administrator cannot delete their own account.
- `zonepanel.app` provides `Handler`, which combines all of the views above.
- `zonepanel.logger` writes key=value lines to standard error. It provides
  `init(level)`, `debug`, `info`, `warn`, `error` and `fatal`.
  - `init` accepts `debug`, `info`, `warn` or `error`. Any other value means
    `info`.
  - `fatal` logs at error level and then raises `SystemExit(1)`.

## What you supply

A `Handler` (or any of the view classes) is built from five things:

- `db`: a DB-API connection that uses `?` placeholders, for example
  `sqlite3`. The handlers read and write two tables:
  - `users`, with the columns `id`, `username`, `email`, `password_hash`,
    `first_name`, `last_name`, `role`, `enabled`, `created_at` and
    `updated_at`.
  - `activity_logs`, with the columns `id`, `user_id`, `zone_id`, `action`,
    `details` and `created_at`.
- `pdns`: an object that talks to the DNS server and raises on failure. It
  must provide these methods:
  - `get_server`, `list_zones_with_info`, `get_zone`, `create_zone`,
    `delete_zone` and `list_records`.
  - `create_record`, `create_records`, `update_record` and `delete_record`.
  - `get_metadata`, `set_metadata`, `delete_metadata`, `rectify_zone` and
    `notify_slaves`.
  - `list_tsig_keys`, `get_tsig_key`, `create_tsig_key`, `update_tsig_key`
    and `delete_tsig_key`.
- `renderer`: a callable `(template_name, data) -> str` that returns HTML.
- `validators`: an object with the methods `validate_domain_name`,
  `validate_record_type`, `validate_record_content`, `validate_username` and
  `validate_email`. Each one raises `ValueError` on invalid input.
- `bcrypt_cost`: the bcrypt work factor for password hashes.

## Example

```python
import sqlite3

from zonepanel.app import Handler
from zonepanel.core import Request


class Server:
    version = "4.8.0"


class DNSClient:
    def get_server(self):
        return Server()


handler = Handler(
    db=sqlite3.connect(":memory:"),
    pdns=DNSClient(),
    renderer=lambda template, data: f"<h1>{data['Title']}</h1>",
    validators=None,
    bcrypt_cost=12,
)

ready = handler.health_ready(Request(path="/health/ready"))
print(ready.status, ready.json())
# 200 {'status': 'ok', 'checks': {'database': 'ok', 'powerdns': 'ok'}}

live = handler.health_live(Request(path="/health/live"))
print(live.json())
# {'status': 'ok', 'alive': True}
```

## Behaviour

- Every change made through the views is written to `activity_logs` together
  with the acting user. A failure to write that entry is logged rather than
  raised, except in the user views, where it aborts the transaction.
- Form views report problems by rendering `error.html` with a `Message`.
- The inline record update answers with a JSON body `{"error": ...}` and
  status 400 or 500.
- Actions that require POST redirect any other method to the matching listing
  or zone page.
- `health_ready` answers 200 when the database answers `SELECT 1` and the DNS
  client's `get_server()` succeeds. Otherwise it answers 503 with
  `"status": "degraded"` and the error text for each failed check.

## What this package does not do

- It does not include a web server, routing, sessions, login or an
  administrator-only guard. Callers attach the `User` to each `Request` and
  decide which views an account may reach.
- It does not include a PowerDNS API client.
- It does not include HTML templates or input validators.
- It does not create the database schema. The tables listed above must
  already exist.