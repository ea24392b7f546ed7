"""User management views, for administrators."""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import bcrypt

from zonepanel import logger
from zonepanel.core import APP_NAME, HandlerBase, Request, Response, User, redirect

ROLES = ("admin", "user")

_MIN_COST = 4
_DEFAULT_COST = 10
_MAX_PASSWORD_BYTES = 72
_INTEGER = re.compile(r"[+-]?\d+")
_USER_COLUMNS = "id, username, email, first_name, last_name, role, enabled, created_at, updated_at"


class _StepFailed(Exception):
    """A step of a database transaction failed; the message is user-facing."""


def _parse_id(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


def _normalize_role(role: str) -> str:
    return role if role in ROLES else "user"


def _user_id(request: Request) -> int | None:
    return request.user.id if request.user is not None else None


def _timestamp(value: Any) -> str:
    return "" if value is None else str(value)


def _user_from_row(row: Sequence[Any]) -> User:
    uid, username, email, first_name, last_name, role, enabled, created_at, updated_at = row
    if any(value is None for value in (username, email, first_name, last_name, role)):
        raise ValueError("converting NULL to string is unsupported")
    return User(
        id=uid,
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        enabled=enabled == 1,
        created_at=_timestamp(created_at),
        updated_at=_timestamp(updated_at),
    )


def _hash_password(password: str, cost: int) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > _MAX_PASSWORD_BYTES:
        raise ValueError("password length exceeds 72 bytes")
    rounds = cost if cost >= _MIN_COST else _DEFAULT_COST
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def _run(cursor: Any, failure: str, sql: str, params: Sequence[Any]) -> Any:
    try:
        cursor.execute(sql, params)
    except Exception as exc:
        raise _StepFailed(f"{failure}: {exc}") from exc
    return cursor


class UserViews(HandlerBase):
    """Views for managing application users."""

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        """Yield a cursor; commit on success, roll back on any failure."""
        try:
            cursor = self.db.cursor()
        except Exception as exc:
            raise _StepFailed(f"Failed to begin transaction: {exc}") from exc
        try:
            yield cursor
            try:
                self.db.commit()
            except Exception as exc:
                raise _StepFailed(f"Failed to commit transaction: {exc}") from exc
        except BaseException:
            try:
                self.db.rollback()
            except Exception as exc:
                logger.error("failed to roll back transaction", error=exc)
            raise
        finally:
            cursor.close()

    def list_users(self, request: Request) -> Response:
        """All users ordered by username (GET /users)."""
        try:
            cursor = self.db.cursor()
            try:
                cursor.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY username")
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except Exception as exc:
            return self.render_error(request, f"Failed to fetch users: {exc}")

        users = []
        for row in rows:
            try:
                users.append(_user_from_row(row))
            except (ValueError, TypeError) as exc:
                logger.error("failed to scan user row", error=exc)

        data = {
            "Title": f"Users - {APP_NAME}",
            "User": request.user,
            "Users": users,
        }
        return self.render(request, "users.html", data)

    def create_user_page(self, request: Request) -> Response:
        """User creation form (GET /users/new)."""
        data = {"Title": f"Create User - {APP_NAME}", "User": request.user}
        return self.render(request, "user_create.html", data)

    def create_user(self, request: Request) -> Response:
        """Create a user with a bcrypt-hashed password (POST /users/create)."""
        if request.method != "POST":
            return redirect("/users")

        username = request.form_value("username").strip()
        email = request.form_value("email").strip()
        password = request.form_value("password").strip()
        first_name = request.form_value("first_name").strip()
        last_name = request.form_value("last_name").strip()
        role = _normalize_role(request.form_value("role").strip())

        if not username or not email or not password:
            return redirect("/users/new")

        try:
            self.validators.validate_username(username)
        except ValueError as exc:
            return self.render_error(request, f"Invalid username: {exc}")
        try:
            self.validators.validate_email(email)
        except ValueError as exc:
            return self.render_error(request, f"Invalid email: {exc}")

        try:
            password_hash = _hash_password(password, self.bcrypt_cost)
        except ValueError:
            return self.render_error(request, "Failed to hash password")

        try:
            with self._transaction() as cursor:
                _run(
                    cursor, "Failed to create user",
                    "INSERT INTO users (username, email, password_hash, first_name, last_name, role) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (username, email, password_hash, first_name, last_name, role),
                )
                new_id = cursor.lastrowid
                _run(
                    cursor, "Failed to log activity",
                    "INSERT INTO activity_logs (user_id, action, details) VALUES (?, 'create_user', ?)",
                    (_user_id(request), f"Created user {username} (id: {new_id})"),
                )
        except _StepFailed as exc:
            return self.render_error(request, str(exc))

        return redirect("/users")

    def edit_user_page(self, request: Request) -> Response:
        """User edit form (GET /users/{user_id}/edit)."""
        target_id = _parse_id(request.path_value("user_id"))
        if target_id is None:
            return self.render_error(request, "Invalid user ID")

        try:
            cursor = self.db.cursor()
            try:
                cursor.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (target_id,))
                row = cursor.fetchone()
            finally:
                cursor.close()
            if row is None:
                raise LookupError("no rows in result set")
            target = _user_from_row(row)
        except Exception:
            return self.render_error(request, "User not found")

        data = {
            "Title": f"Edit User - {APP_NAME}",
            "User": request.user,
            "TargetUser": target,
        }
        return self.render(request, "user_edit.html", data)

    def update_user(self, request: Request) -> Response:
        """Update a user's profile and, if given, password (POST /users/{user_id}/update)."""
        target_id = _parse_id(request.path_value("user_id")) or 0

        if request.method != "POST":
            return redirect("/users")

        email = request.form_value("email").strip()
        first_name = request.form_value("first_name").strip()
        last_name = request.form_value("last_name").strip()
        role = _normalize_role(request.form_value("role").strip())
        enabled = 1 if request.form_value("enabled") == "on" else 0
        new_password = request.form_value("password").strip()

        if email:
            try:
                self.validators.validate_email(email)
            except ValueError as exc:
                return self.render_error(request, f"Invalid email: {exc}")

        password_hash = None
        if new_password:
            try:
                password_hash = _hash_password(new_password, self.bcrypt_cost)
            except ValueError:
                return self.render_error(request, "Failed to hash password")

        try:
            with self._transaction() as cursor:
                _run(
                    cursor, "Failed to update user",
                    "UPDATE users SET email = ?, first_name = ?, last_name = ?, role = ?, "
                    "enabled = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (email, first_name, last_name, role, enabled, target_id),
                )
                if password_hash is not None:
                    _run(
                        cursor, "Failed to update password",
                        "UPDATE users SET password_hash = ? WHERE id = ?",
                        (password_hash, target_id),
                    )
                _run(
                    cursor, "Failed to log activity",
                    "INSERT INTO activity_logs (user_id, action, details) VALUES (?, 'update_user', ?)",
                    (_user_id(request), f"Updated user {target_id}"),
                )
        except _StepFailed as exc:
            return self.render_error(request, str(exc))

        return redirect("/users")

    def delete_user(self, request: Request) -> Response:
        """Delete the user named by the user_id form value; never oneself (POST /users/delete)."""
        if request.method != "POST":
            return redirect("/users")

        target_id = _parse_id(request.form_value("user_id")) or 0
        if target_id == _user_id(request):
            return redirect("/users")

        try:
            with self._transaction() as cursor:
                _run(cursor, "Failed to delete user", "DELETE FROM users WHERE id = ?", (target_id,))
                _run(
                    cursor, "Failed to log activity",
                    "INSERT INTO activity_logs (user_id, action, details) VALUES (?, 'delete_user', ?)",
                    (_user_id(request), f"Deleted user {target_id}"),
                )
        except _StepFailed as exc:
            return self.render_error(request, str(exc))

        return redirect("/users")