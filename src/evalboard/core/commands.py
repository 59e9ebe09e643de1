"""Optimistic local mutations paired with their inverse."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeVar

import structlog

from ..errors import EvalboardError

T = TypeVar("T")

_logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class OptimisticCommand:
    """Tentative local change that can be replayed backwards."""

    name: str
    apply: Callable[[], None]
    revert: Callable[[], None]


def run_optimistic(command: OptimisticCommand, remote: Callable[[], T]) -> T:
    """Apply ``command`` locally, then run ``remote``.

    When ``remote`` fails with a dashboard error the inverse is replayed and the error
    re-raised, leaving local state as it was before the call.
    """
    command.apply()
    try:
        return remote()
    except EvalboardError as exc:
        command.revert()
        _logger.warning("command.reverted", command=command.name, error=str(exc))
        raise
