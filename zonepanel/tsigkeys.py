"""Views for listing, creating, editing and deleting TSIG keys."""

from __future__ import annotations

import base64
import secrets

from zonepanel.core import (
    APP_NAME,
    HandlerBase,
    Request,
    Response,
    TSIGKey,
    redirect,
)

TSIG_SECRET_BYTES = 64


def tsig_algorithms() -> list[str]:
    """TSIG algorithms offered in the forms."""
    return ["hmac-md5", "hmac-sha1", "hmac-sha256", "hmac-sha512"]


def generate_tsig_secret() -> str:
    """A random 64-byte secret, base64 encoded, suitable as TSIG key material."""
    try:
        raw = secrets.token_bytes(TSIG_SECRET_BYTES)
    except OSError as exc:
        raise OSError(f"generate tsig secret: {exc}") from exc
    return base64.b64encode(raw).decode("ascii")


def _user_id(request: Request) -> int | None:
    return request.user.id if request.user is not None else None


def _is_admin(request: Request) -> bool:
    return request.user is not None and request.user.is_admin()


class TSIGKeyViews(HandlerBase):
    """Views for the TSIG keys held by the DNS server."""

    def list_tsig_keys(self, request: Request) -> Response:
        """TSIG key listing (GET /tsigkeys)."""
        try:
            keys = list(self.pdns.list_tsig_keys())
        except Exception as exc:
            return self.render_error(request, f"Failed to fetch TSIG keys: {exc}")

        data = {
            "Title": f"TSIG Keys - {APP_NAME}",
            "User": request.user,
            "Keys": keys,
            "IsAdmin": _is_admin(request),
        }
        return self.render(request, "tsigkeys.html", data)

    def create_tsig_key_page(self, request: Request) -> Response:
        """TSIG key creation form (GET /tsigkeys/new)."""
        data = {
            "Title": f"Create TSIG Key - {APP_NAME}",
            "User": request.user,
            "Algorithms": tsig_algorithms(),
        }
        return self.render(request, "tsigkey_create.html", data)

    def create_tsig_key(self, request: Request) -> Response:
        """Create a TSIG key; empty key material is generated (POST /tsigkeys/create)."""
        if request.method != "POST":
            return redirect("/tsigkeys")

        name = request.form_value("name").strip()
        algorithm = request.form_value("algorithm").strip()
        key = request.form_value("key").strip()

        if not name:
            return self.render_error(request, "Key name is required")
        if not algorithm:
            return self.render_error(request, "Algorithm is required")
        if not key:
            try:
                key = generate_tsig_secret()
            except OSError as exc:
                return self.render_error(request, f"Failed to generate TSIG secret: {exc}")

        try:
            created = self.pdns.create_tsig_key(
                TSIGKey(name=name, algorithm=algorithm, key=key, type="TSIGKey")
            )
        except Exception as exc:
            return self.render_error(request, f"Failed to create TSIG key: {exc}")

        self.log_activity(
            _user_id(request), None, "create_tsigkey",
            f"Created TSIG key {created.name} (alg: {created.algorithm})",
        )
        return redirect("/tsigkeys")

    def edit_tsig_key_page(self, request: Request) -> Response:
        """TSIG key edit form (GET /tsigkeys/{key_id}/edit)."""
        key_id = request.path_value("key_id")
        try:
            tsig_key = self.pdns.get_tsig_key(key_id)
        except Exception as exc:
            return self.render_error(request, f"TSIG key not found: {exc}")

        data = {
            "Title": f"Edit TSIG Key - {APP_NAME}",
            "User": request.user,
            "Key": tsig_key,
            "Algorithms": tsig_algorithms(),
        }
        return self.render(request, "tsigkey_edit.html", data)

    def update_tsig_key(self, request: Request) -> Response:
        """Replace a TSIG key's algorithm and material (POST /tsigkeys/{key_id}/update)."""
        if request.method != "POST":
            return redirect("/tsigkeys")

        key_id = request.path_value("key_id")
        algorithm = request.form_value("algorithm").strip()
        key = request.form_value("key").strip()

        if not algorithm:
            return self.render_error(request, "Algorithm is required")
        if not key:
            return self.render_error(request, "Key material is required")

        tsig_key = TSIGKey(name=key_id, algorithm=algorithm, key=key, type="TSIGKey")
        try:
            self.pdns.update_tsig_key(key_id, tsig_key)
        except Exception as exc:
            return self.render_error(request, f"Failed to update TSIG key: {exc}")

        self.log_activity(
            _user_id(request), None, "update_tsigkey",
            f"Updated TSIG key {key_id} (alg: {algorithm})",
        )
        return redirect("/tsigkeys")

    def delete_tsig_key(self, request: Request) -> Response:
        """Delete the TSIG key named by the key_id form value (POST /tsigkeys/delete)."""
        if request.method != "POST":
            return redirect("/tsigkeys")

        key_id = request.form_value("key_id").strip()
        if not key_id:
            return redirect("/tsigkeys")

        try:
            self.pdns.delete_tsig_key(key_id)
        except Exception as exc:
            return self.render_error(request, f"Failed to delete TSIG key: {exc}")

        self.log_activity(_user_id(request), None, "delete_tsigkey", f"Deleted TSIG key {key_id}")
        return redirect("/tsigkeys")