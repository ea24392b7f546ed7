"""Views for creating, editing and deleting DNS records within a zone."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from zonepanel.core import (
    APP_NAME,
    HandlerBase,
    RecordInfo,
    Request,
    Response,
    RRSet,
    json_response,
    record_types,
    redirect,
)
from zonepanel.zones import (
    _atoi,
    _log_and_redirect,
    _post_only,
    _user_id,
    _zone_location,
)

DEFAULT_TTL = 3600


def _ttl(text: str) -> int:
    value = _atoi(text)
    return value if value is not None and value > 0 else DEFAULT_TTL


def _priority(text: str) -> int:
    return (_atoi(text) or 0) if text else 0


@dataclass(frozen=True)
class RecordForm:
    """Record fields submitted by a form."""

    name: str
    type: str
    content: str
    ttl: int = DEFAULT_TTL
    priority: int = 0
    disabled: bool = False

    @property
    def complete(self) -> bool:
        return bool(self.name and self.type and self.content)

    def to_rrset(self) -> RRSet:
        return RRSet(
            name=self.name,
            type=self.type,
            ttl=self.ttl,
            records=[RecordInfo(content=self.content, priority=self.priority,
                                disabled=self.disabled)],
        )


def parse_record_form(request: Request) -> RecordForm:
    """Read a record from form values; a missing or non-positive TTL becomes 3600."""
    return RecordForm(
        name=request.form_value("name").strip(),
        type=request.form_value("type").strip(),
        content=request.form_value("content").strip(),
        ttl=_ttl(request.form_value("ttl").strip()),
        priority=_priority(request.form_value("priority").strip()),
        disabled=request.form_value("disabled") in ("on", "true"),
    )


class RecordViews(HandlerBase):
    """Views for the records of a zone."""

    def _validation_error(self, record_type: str, content: str) -> str | None:
        try:
            self.validators.validate_record_type(record_type)
        except ValueError as exc:
            return f"Invalid record type: {exc}"
        try:
            self.validators.validate_record_content(record_type, content)
        except ValueError as exc:
            return f"Invalid record content: {exc}"
        return None

    def _zone_page(self, request: Request, template: str, title: str, **extra) -> Response:
        """Render a record form page for the zone in the path."""
        try:
            zone = self.pdns.get_zone(request.path_value("zone_id"))
        except Exception:
            return self.render_error(request, "Zone not found")
        data = {
            "Title": f"{title} - {zone.name} - {APP_NAME}",
            "User": request.user,
            "Zone": zone,
            "RecordTypes": record_types(),
            **extra,
        }
        return self.render(request, template, data)

    def create_record_page(self, request: Request) -> Response:
        """Record creation form (GET /zones/{zone_id}/records/new)."""
        return self._zone_page(request, "record_create.html", "Add Record")

    @_post_only(_zone_location)
    def create_record(self, request: Request) -> Response:
        """Create one record from form values (POST /zones/{zone_id}/records/create)."""
        zone_id = request.path_value("zone_id")

        form = dataclasses.replace(parse_record_form(request), disabled=False)
        if not form.complete:
            return redirect(f"/zones/{zone_id}/records/new")

        problem = self._validation_error(form.type, form.content)
        if problem:
            return self.render_error(request, problem)

        try:
            self.pdns.create_record(zone_id, form.to_rrset())
        except Exception as exc:
            return self.render_error(request, f"Failed to create record: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "create_record",
            f"Created {form.type} record {form.name} -> {form.content}",
        )

    def edit_record_page(self, request: Request) -> Response:
        """Record edit form for the name and type given in the query."""
        zone_id = request.path_value("zone_id")
        record_name = request.query_value("name")
        record_type = request.query_value("type")

        try:
            self.pdns.get_zone(zone_id)
        except Exception:
            return self.render_error(request, "Zone not found")

        try:
            records = list(self.pdns.list_records(zone_id))
        except Exception:
            return self.render_error(request, "Failed to fetch records")

        target = next(
            (rr for rr in records if rr.name == record_name and rr.type == record_type),
            None,
        )
        if target is None:
            return self.render_error(request, "Record not found")

        return self._zone_page(request, "record_edit.html", "Edit Record", Record=target)

    @_post_only(_zone_location)
    def update_record(self, request: Request) -> Response:
        """Replace a record from form values (POST /zones/{zone_id}/records/update)."""
        zone_id = request.path_value("zone_id")

        form = parse_record_form(request)
        if not form.complete:
            return self.render_error(request, "Name, type, and content are required")

        problem = self._validation_error(form.type, form.content)
        if problem:
            return self.render_error(request, problem)

        try:
            self.pdns.update_record(zone_id, form.to_rrset())
        except Exception as exc:
            return self.render_error(request, f"Failed to update record: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "update_record",
            f"Updated {form.type} record {form.name}",
        )

    def inline_update_record(self, request: Request) -> Response:
        """Replace a record and answer in JSON (POST /zones/{zone_id}/records/inline-update)."""
        zone_id = request.path_value("zone_id")

        form = parse_record_form(request)
        if not form.complete:
            return json_response(400, {"error": "Name, type, and content are required"})

        problem = self._validation_error(form.type, form.content)
        if problem:
            return json_response(400, {"error": problem})

        rrset = form.to_rrset()
        try:
            self.pdns.update_record(zone_id, rrset)
        except Exception:
            return json_response(500, {"error": "Failed to update record"})

        self.log_activity(
            _user_id(request), zone_id, "update_record",
            f"Updated {form.type} record {form.name}",
        )
        return json_response(200, {"success": True, "record": rrset})

    def batch_create_records(self, request: Request) -> Response:
        """Create several records at once (POST /zones/{zone_id}/records/batch-create)."""
        zone_id = request.path_value("zone_id")

        names = request.form_values("name")
        types = request.form_values("type")
        contents = request.form_values("content")
        if not names or not types or not contents:
            return self.render_error(request, "At least one record is required")

        rrsets: list[RRSet] = []
        for raw_name, raw_type, raw_content in zip(names, types, contents):
            name, record_type, content = raw_name.strip(), raw_type.strip(), raw_content.strip()
            if not (name and record_type and content):
                continue

            try:
                self.validators.validate_record_type(record_type)
            except ValueError as exc:
                return self.render_error(request, f"Invalid record type '{record_type}': {exc}")
            try:
                self.validators.validate_record_content(record_type, content)
            except ValueError as exc:
                return self.render_error(request, f"Invalid record content: {exc}")

            rrsets.append(RecordForm(name, record_type, content).to_rrset())
            self.log_activity(
                _user_id(request), zone_id, "create_record",
                f"Created {record_type} record {name} -> {content}",
            )

        if not rrsets:
            return self.render_error(request, "No valid records to create")

        try:
            self.pdns.create_records(zone_id, rrsets)
        except Exception as exc:
            return self.render_error(request, f"Failed to create records: {exc}")

        return redirect(f"/zones/{zone_id}")

    @_post_only(_zone_location)
    def delete_record(self, request: Request) -> Response:
        """Delete the record named by the name and type form values."""
        zone_id = request.path_value("zone_id")
        record_name = request.form_value("name")
        record_type = request.form_value("type")

        try:
            self.pdns.delete_record(zone_id, record_name, record_type)
        except Exception as exc:
            return self.render_error(request, f"Failed to delete record: {exc}")

        return _log_and_redirect(
            self, request, zone_id, "delete_record",
            f"Deleted {record_type} record {record_name}",
        )