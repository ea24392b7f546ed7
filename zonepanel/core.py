"""Request and response types, data models and the shared handler base."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Union

from zonepanel import logger

APP_NAME = "ZonePanel"

_FormInput = Mapping[str, Union[str, Iterable[str]]]


def _multi(mapping: _FormInput | None) -> dict[str, list[str]]:
    return {
        key: [value] if isinstance(value, str) else list(value)
        for key, value in (mapping or {}).items()
    }


@dataclass
class User:
    """An application user."""

    id: int
    username: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = "user"
    enabled: bool = True
    created_at: str = ""
    updated_at: str = ""

    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class Request:
    """An incoming request: method, query and form values, path parameters and user."""

    method: str = "GET"
    path: str = "/"
    query: _FormInput = field(default_factory=dict)
    form: _FormInput = field(default_factory=dict)
    path_params: Mapping[str, str] = field(default_factory=dict)
    user: User | None = None

    def __post_init__(self) -> None:
        self.query = _multi(self.query)
        self.form = _multi(self.form)
        self.path_params = dict(self.path_params)

    def form_value(self, name: str) -> str:
        """First value of ``name`` from the body, falling back to the query; "" if absent."""
        for source in (self.form, self.query):
            values = source.get(name)
            if values:
                return values[0]
        return ""

    def form_values(self, name: str) -> list[str]:
        """All body values for ``name``."""
        return list(self.form.get(name, []))

    def query_value(self, name: str) -> str:
        values = self.query.get(name)
        return values[0] if values else ""

    def path_value(self, name: str) -> str:
        return self.path_params.get(name, "")


@dataclass
class Response:
    """An outgoing response."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def json(self) -> Any:
        return json.loads(self.body)


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"cannot encode {type(obj).__name__} as JSON")


def redirect(location: str) -> Response:
    """A 303 See Other response to ``location``."""
    return Response(status=303, headers={"Location": location})


def json_response(status: int, payload: Any) -> Response:
    """A JSON response; dataclass values are encoded field by field."""
    return Response(
        status=status,
        headers={"Content-Type": "application/json"},
        body=json.dumps(payload, default=_json_default) + "\n",
    )


@dataclass
class RecordInfo:
    """One record inside an RRset."""

    content: str
    disabled: bool = False
    priority: int = 0
    name: str = ""
    type: str = ""


@dataclass
class RRSet:
    """A set of records sharing a name and type."""

    name: str
    type: str
    ttl: int = 0
    records: list[RecordInfo] = field(default_factory=list)


@dataclass
class TSIGKey:
    """A TSIG key as held by the DNS server."""

    name: str
    algorithm: str = ""
    key: str = ""
    id: str = ""
    type: str = "TSIGKey"


@dataclass
class Metadata:
    """One zone metadata kind with its values."""

    kind: str
    metadata: list[str] = field(default_factory=list)


@dataclass
class ZoneCreateRequest:
    """Parameters for creating a zone."""

    name: str
    kind: str = "Native"
    nameservers: list[str] = field(default_factory=list)


@dataclass
class ActivityLog:
    """One entry of the activity log."""

    id: int
    user_id: int | None
    zone_id: str | None
    action: str
    details: str
    created_at: str
    username: str | None = None


Renderer = Callable[[str, Mapping[str, Any]], str]


class HandlerBase:
    """Shared state and helpers for the web handlers.

    ``db`` is a DB-API connection using "?" placeholders, ``pdns`` a DNS server
    API client that raises on failure, ``renderer`` turns a template name and
    data into HTML, and ``validators`` raises ``ValueError`` on invalid input.
    """

    def __init__(self, db: Any, pdns: Any, renderer: Renderer, validators: Any,
                 bcrypt_cost: int) -> None:
        self.db = db
        self.pdns = pdns
        self.renderer = renderer
        self.validators = validators
        self.bcrypt_cost = bcrypt_cost

    def render(self, request: Request, template: str, data: Mapping[str, Any]) -> Response:
        body = self.renderer(template, data)
        return Response(
            status=200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            body=body,
        )

    def render_error(self, request: Request, message: str) -> Response:
        data = {"Title": f"Error - {APP_NAME}", "Message": message}
        return self.render(request, "error.html", data)

    def log_activity(self, user_id: int | None, zone_id: str | None, action: str,
                     details: str) -> None:
        """Record an activity; a storage failure is logged, not raised."""
        try:
            cursor = self.db.cursor()
            try:
                cursor.execute(
                    "INSERT INTO activity_logs (user_id, zone_id, action, details) "
                    "VALUES (?, ?, ?, ?)",
                    (user_id, zone_id, action, details),
                )
            finally:
                cursor.close()
            self.db.commit()
        except Exception as exc:  # any database driver error
            logger.error(f"failed to log {action} activity", zone_id=zone_id, error=exc)

    def _ping_db(self) -> None:
        cursor = self.db.cursor()
        try:
            cursor.execute("SELECT 1")
        finally:
            cursor.close()

    def health_ready(self, request: Request) -> Response:
        """Readiness: 200 when the database and DNS API answer, 503 otherwise."""
        checks: dict[str, str] = {}
        probes: list[tuple[str, Callable[[], Any]]] = [
            ("database", self._ping_db),
            ("powerdns", self.pdns.get_server),
        ]
        for name, probe in probes:
            try:
                probe()
            except Exception as exc:  # any failure means the dependency is down
                checks[name] = f"error: {exc}"
            else:
                checks[name] = "ok"

        healthy = all(value == "ok" for value in checks.values())
        payload = {"status": "ok" if healthy else "degraded", "checks": checks}
        return json_response(200 if healthy else 503, payload)

    def health_live(self, request: Request) -> Response:
        """Liveness: always 200."""
        return Response(
            status=200,
            headers={"Content-Type": "application/json"},
            body='{"status":"ok","alive":true}',
        )


def record_types() -> list[str]:
    """Common DNS record types."""
    return [
        "A", "AAAA", "AFSDB", "ALIAS", "CAA", "CERT", "CNAME",
        "DNSKEY", "DS", "HINFO", "KEY", "LOC", "MX", "NAPTR",
        "NS", "NSEC", "NSEC3", "NSEC3PARAM", "OPENPGPKEY", "PTR",
        "RP", "RRSIG", "SOA", "SPF", "SRV", "SSHFP", "TLSA",
        "TXT", "URI",
    ]


def metadata_kinds() -> list[str]:
    """Common zone metadata kinds."""
    return [
        "ALLOW-AXFR-FROM",
        "ALSO-NOTIFY",
        "AXFR-SOURCE",
        "FORWARD-DNSSEC",
        "GSS-ALLOW-AXFR-PRINCIPALS",
        "LUA-AXFR-SCRIPT",
        "NSEC3NARROW",
        "NSEC3PARAM",
        "PRESIGNED",
        "PUBLISH-CDNSKEY",
        "PUBLISH-CDS",
        "SOA-EDIT",
        "SOA-EDIT-API",
        "TSIG-ALLOW-AXFR",
    ]