"""Evaluator identity: durable device token with an optional display name."""

from __future__ import annotations

import secrets
import string
from pathlib import Path
from typing import Callable

import pendulum
import structlog

from .errors import StoreError

_TOKEN_PREFIX = "interviewer_"
_TOKEN_ALPHABET = string.digits + string.ascii_lowercase


def generate_token(now: pendulum.DateTime | None = None) -> str:
    """Return ``interviewer_<epoch-ms>_<9 base-36 chars>``."""
    moment = now or pendulum.now()
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(9))
    return f"{_TOKEN_PREFIX}{int(moment.timestamp() * 1000)}_{suffix}"


class EvaluatorIdentity:
    """Resolve the opaque evaluator key used for evaluation upserts.

    The device token is generated once and kept at ``token_path``. A
    non-blank display name, when configured, takes precedence over it.
    """

    def __init__(
        self,
        token_path: str | Path,
        *,
        display_name: str | None = None,
        token_factory: Callable[[], str] | None = None,
    ) -> None:
        self._token_path = Path(token_path)
        self._display_name = display_name
        self._token_factory = token_factory or generate_token
        self._logger = structlog.get_logger(__name__)

    @property
    def display_name(self) -> str | None:
        name = (self._display_name or "").strip()
        return name or None

    def device_token(self) -> str:
        if self._token_path.exists():
            token = self._token_path.read_text(encoding="utf-8").strip()
            if token:
                return token
        token = self._token_factory()
        try:
            self._token_path.parent.mkdir(parents=True, exist_ok=True)
            self._token_path.write_text(token + "\n", encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot write evaluator token {self._token_path}: {exc}") from exc
        self._logger.info("identity.token_created", path=str(self._token_path))
        return token

    def resolve(self) -> str:
        return self.display_name or self.device_token()


__all__ = ["EvaluatorIdentity", "generate_token"]
