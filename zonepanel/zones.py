"""Zone listing, creation, deletion, inspection and metadata views."""

from __future__ import annotations

import functools
import re
from typing import Any, Callable, Union

from zonepanel import logger
from zonepanel.core import (
    APP_NAME,
    ActivityLog,
    HandlerBase,
    Metadata,
    Request,
    Response,
    RRSet,
    ZoneCreateRequest,
    metadata_kinds,
    record_types,
    redirect,
)
from zonepanel.pagination import paginate

DEFAULT_PER_PAGE = 10
ACTIVITY_LOG_LIMIT = 50

_INTEGER = re.compile(r"[+-]?\d+")

_Location = Union[str, Callable[[Request], str]]


def _atoi(text: str) -> int | None:
    """Parse a plain decimal integer; None when ``text`` is not one."""
    return int(text) if _INTEGER.fullmatch(text) else None


def _user_id(request: Request) -> int | None:
    return request.user.id if request.user is not None else None


def _is_admin(request: Request) -> bool:
    return request.user is not None and request.user.is_admin()


def _zone_location(request: Request) -> str:
    """The detail page of the zone named in the request path."""
    return f"/zones/{request.path_value('zone_id')}"


def _post_only(fallback: _Location):
    """Redirect anything but a POST to ``fallback`` instead of running the view."""

    def decorate(view):
        @functools.wraps(view)
        def wrapper(self, request: Request) -> Response:
            if request.method != "POST":
                target = fallback(request) if callable(fallback) else fallback
                return redirect(target)
            return view(self, request)

        return wrapper

    return decorate


def _log_and_redirect(
    view: HandlerBase,
    request: Request,
    zone_id: str | None,
    action: str,
    details: str,
    location: str | None = None,
) -> Response:
    """Record an activity for the requesting user, then redirect (to the zone by default)."""
    view.log_activity(_user_id(request), zone_id, action, details)
    return redirect(location or f"/zones/{zone_id}")


def _page_number(request: Request) -> int:
    return _atoi(request.query_value("page")) or 0


def _per_page(request: Request) -> int:
    raw = request.query_value("perPage")
    if raw:
        value = _atoi(raw)
        if value is not None and value >= 0:
            return value
    return DEFAULT_PER_PAGE


def _zone_name(item: Any) -> str:
    """Name of a zone, whether given bare or wrapped with extra info under ``zone``."""
    return getattr(item, "zone", item).name


def _matches(rrset: RRSet, needle: str) -> bool:
    if needle in rrset.name.lower() or needle in rrset.type.lower():
        return True
    return any(needle in record.content.lower() for record in rrset.records)


class ZoneViews(HandlerBase):
    """Views for zones and their metadata."""

    def list_zones(self, request: Request) -> Response:
        """Zones listing with optional search and pagination (GET /zones)."""
        try:
            zones = list(self.pdns.list_zones_with_info())
        except Exception as exc:
            return self.render_error(request, f"Failed to fetch zones: {exc}")

        search = request.query_value("search").strip()
        if search:
            needle = search.lower()
            zones = [zone for zone in zones if needle in _zone_name(zone).lower()]

        paginated, page_info = paginate(zones, _page_number(request), _per_page(request))
        data = {
            "Title": f"Zones - {APP_NAME}",
            "User": request.user,
            "Zones": paginated,
            "PageInfo": page_info,
            "Search": search,
            "IsAdmin": _is_admin(request),
        }
        return self.render(request, "zones.html", data)

    def create_zone_page(self, request: Request) -> Response:
        """Zone creation form (GET /zones/new)."""
        data = {
            "Title": f"Create Zone - {APP_NAME}",
            "User": request.user,
            "DNSTypes": ["Native", "Master", "Slave"],
        }
        return self.render(request, "zone_create.html", data)

    @_post_only("/zones")
    def create_zone(self, request: Request) -> Response:
        """Create a zone from name, kind and comma-separated nameservers (POST /zones/create)."""
        name = request.form_value("name").strip()
        kind = request.form_value("kind").strip()
        nameservers = request.form_value("nameservers").strip()

        if not name:
            return self.render_error(request, "Zone name is required")
        try:
            self.validators.validate_domain_name(name)
        except ValueError as exc:
            return self.render_error(request, f"Invalid zone name: {exc}")

        create = ZoneCreateRequest(
            name=name,
            kind=kind or "Native",
            nameservers=[ns.strip() for ns in nameservers.split(",") if ns.strip()],
        )
        try:
            zone = self.pdns.create_zone(create)
        except Exception as exc:
            return self.render_error(request, f"Failed to create zone: {exc}")

        return _log_and_redirect(
            self, request, zone.id, "create_zone",
            f"Created zone {zone.name} (kind: {zone.kind})", "/zones",
        )

    @_post_only("/zones")
    def delete_zone(self, request: Request) -> Response:
        """Delete the zone named by the zone_id form value (POST /zones/delete)."""
        zone_id = request.form_value("zone_id")
        if not zone_id:
            return redirect("/zones")

        try:
            self.pdns.delete_zone(zone_id)
        except Exception as exc:
            return self.render_error(request, f"Failed to delete zone: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "delete_zone", f"Deleted zone {zone_id}", "/zones",
        )

    def view_zone(self, request: Request) -> Response:
        """Zone detail page with records, metadata and activity (GET /zones/{zone_id})."""
        zone_id = request.path_value("zone_id")

        try:
            zone = self.pdns.get_zone(zone_id)
        except Exception as exc:
            return self.render_error(request, f"Zone not found: {exc}")

        try:
            records = list(self.pdns.list_records(zone_id))
        except Exception as exc:
            return self.render_error(request, f"Failed to fetch records: {exc}")

        search = request.query_value("search").strip()
        if search:
            needle = search.lower()
            records = [rrset for rrset in records if _matches(rrset, needle)]

        paginated, page_info = paginate(records, _page_number(request), _per_page(request))

        try:
            metadata = self.pdns.get_metadata(zone_id)
        except Exception:
            metadata = None

        try:
            server = self.pdns.get_server()
        except Exception:
            server = None
        pdns_version = server.version if server is not None else "unknown"

        data = {
            "Title": f"{zone.name} - {APP_NAME}",
            "User": request.user,
            "Zone": zone,
            "Records": paginated,
            "RecordPageInfo": page_info,
            "Search": search,
            "MetaData": metadata,
            "Logs": self.zone_activity_logs(zone_id),
            "PDNSVersion": pdns_version,
            "RecordTypes": record_types(),
            "MetaKinds": metadata_kinds(),
            "IsAdmin": _is_admin(request),
        }
        return self.render(request, "zone_view.html", data)

    def rectify_zone(self, request: Request) -> Response:
        """Rectify a zone's DNSSEC data (POST /zones/{zone_id}/rectify)."""
        zone_id = request.path_value("zone_id")
        try:
            self.pdns.rectify_zone(zone_id)
        except Exception as exc:
            return self.render_error(request, f"Rectify failed: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "rectify_zone", f"Rectified zone {zone_id}",
        )

    def notify_zone(self, request: Request) -> Response:
        """Send NOTIFY to the zone's secondaries (POST /zones/{zone_id}/notify)."""
        zone_id = request.path_value("zone_id")
        try:
            self.pdns.notify_slaves(zone_id)
        except Exception as exc:
            return self.render_error(request, f"Notify failed: {exc}")
        return redirect(f"/zones/{zone_id}")

    @_post_only("/zones")
    def create_metadata(self, request: Request) -> Response:
        """Set a metadata kind from newline-separated values (POST /zones/{zone_id}/metadata/create)."""
        zone_id = request.path_value("zone_id")
        kind = request.form_value("kind").strip()
        values_raw = request.form_value("values").strip()

        if not kind:
            return self.render_error(request, "Metadata kind is required")
        if not values_raw:
            return self.render_error(request, "At least one value is required")

        values = [line.strip() for line in values_raw.split("\n") if line.strip()]
        if not values:
            return self.render_error(request, "At least one non-empty value is required")

        try:
            self.pdns.set_metadata(zone_id, Metadata(kind=kind, metadata=values))
        except Exception as exc:
            return self.render_error(request, f"Failed to set metadata: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "create_metadata",
            f"Set metadata {kind} on zone {zone_id}",
        )

    @_post_only("/zones")
    def delete_metadata(self, request: Request) -> Response:
        """Remove a metadata kind (POST /zones/{zone_id}/metadata/delete)."""
        zone_id = request.path_value("zone_id")
        kind = request.form_value("kind").strip()
        if not kind:
            return self.render_error(request, "Metadata kind is required")

        try:
            self.pdns.delete_metadata(zone_id, kind)
        except Exception as exc:
            return self.render_error(request, f"Failed to delete metadata: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "delete_metadata",
            f"Deleted metadata {kind} from zone {zone_id}",
        )

    def zone_activity_logs(self, zone_id: str) -> list[ActivityLog]:
        """The newest activity entries for a zone, at most fifty."""
        try:
            cursor = self.db.cursor()
        except Exception:
            return []
        try:
            try:
                cursor.execute(
                    "SELECT al.id, al.user_id, al.zone_id, al.action, al.details, "
                    "al.created_at, u.username "
                    "FROM activity_logs al "
                    "LEFT JOIN users u ON al.user_id = u.id "
                    "WHERE al.zone_id = ? "
                    "ORDER BY al.created_at DESC "
                    f"LIMIT {ACTIVITY_LOG_LIMIT}",
                    (zone_id,),
                )
                rows = cursor.fetchall()
            except Exception as exc:
                logger.error("failed to query zone activity logs", zone_id=zone_id, error=exc)
                return []
        finally:
            cursor.close()

        logs = []
        for row in rows:
            try:
                log_id, user_id, log_zone, action, details, created_at, username = row
            except ValueError as exc:
                logger.error("failed to scan activity log row", zone_id=zone_id, error=exc)
                continue
            logs.append(ActivityLog(
                id=log_id, user_id=user_id, zone_id=log_zone, action=action,
                details=details, created_at=str(created_at), username=username,
            ))
        return logs