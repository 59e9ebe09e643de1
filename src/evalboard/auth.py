"""Static credential check and the session flag that records a login."""

from __future__ import annotations

import hmac
import json
from pathlib import Path

import pendulum
import structlog

from .errors import StoreError, ValidationError


class CredentialChecker:
    """Compare user input with the single configured account."""

    def __init__(self, username: str | None, password: str | None) -> None:
        self._username = username
        self._password = password

    @property
    def configured(self) -> bool:
        return bool(self._username and self._password)

    def check(self, username: str, password: str) -> str:
        """Return the normalised username or raise ``ValidationError``."""
        user = (username or "").strip()
        if not user or not (password or "").strip():
            raise ValidationError("Username and password are both required")
        if not self.configured:
            raise ValidationError("No credentials are configured")
        user_ok = hmac.compare_digest(user.encode("utf-8"), str(self._username).encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), str(self._password).encode("utf-8"))
        if not (user_ok and password_ok):
            raise ValidationError("Invalid username or password")
        return user


class AuthSession:
    """Login flag persisted in a small JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._logger = structlog.get_logger(__name__)

    def login(self, username: str) -> None:
        payload = {
            "id": username,
            "logged_in": True,
            "at": pendulum.now().to_iso8601_string(),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write session file {self._path}: {exc}") from exc
        self._logger.info("auth.login", user=username)

    def logout(self) -> None:
        self._path.unlink(missing_ok=True)
        self._logger.info("auth.logout")

    def current_user(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            self._logger.warning("auth.session_unreadable", path=str(self._path))
            return None
        if not isinstance(payload, dict) or not payload.get("logged_in"):
            return None
        return payload.get("id")

    def is_authenticated(self) -> bool:
        return self.current_user() is not None


__all__ = ["AuthSession", "CredentialChecker"]
