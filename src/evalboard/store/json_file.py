"""Record store persisted to a single JSON document."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError as PydanticValidationError

from ..errors import StoreError
from ..schemas import Candidate, Evaluation
from .memory import InMemoryRecordStore, StoreState

_FORMAT_VERSION = 1


class JsonFileRecordStore(InMemoryRecordStore):
    """In-memory store that rewrites ``path`` atomically on every write.

    Several processes may share one file. Reads pick up the latest document
    under a shared lock; writes re-read it under an exclusive lock on
    ``<path>.lock`` so that each change applies to the current records.
    """

    def __init__(self, path: str | Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)
        self._lock_path = self._path.with_name(f"{self._path.name}.lock")
        if self._path.exists():
            self._state = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _snapshot(self) -> StoreState:
        if not self._path.exists():
            return self._state
        with self._file_lock(fcntl.LOCK_SH):
            self._reload()
        return self._state

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._file_lock(fcntl.LOCK_EX):
            self._reload()
            yield

    @contextmanager
    def _file_lock(self, operation: int) -> Iterator[None]:
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = self._lock_path.open("a")
        except OSError as exc:
            raise StoreError(f"Cannot lock store file {self._path}: {exc}") from exc
        with handle:
            fcntl.flock(handle.fileno(), operation)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _reload(self) -> None:
        if self._path.exists():
            self._state = self._read()

    def _read(self) -> StoreState:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read store file {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreError(f"Store file {self._path} must contain a JSON object")

        try:
            candidates = [Candidate.model_validate(item) for item in raw.get("candidates", [])]
            evaluations = [Evaluation.model_validate(item) for item in raw.get("evaluations", [])]
        except PydanticValidationError as exc:
            raise StoreError(f"Store file {self._path} has invalid records: {exc}") from exc

        return StoreState(
            candidates={candidate.id: candidate for candidate in candidates},
            evaluations={evaluation.id: evaluation for evaluation in evaluations},
            settings=dict(raw.get("settings", {})),
        )

    def _persist(self, state: StoreState) -> None:
        document = {
            "version": _FORMAT_VERSION,
            "candidates": [
                candidate.model_dump(mode="json", exclude={"evaluations"})
                for candidate in state.candidates.values()
            ],
            "evaluations": [evaluation.model_dump(mode="json") for evaluation in state.evaluations.values()],
            "settings": state.settings,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            self._logger.error("store.write_failed", path=str(self._path), error=str(exc))
            raise StoreError(f"Cannot write store file {self._path}: {exc}") from exc
