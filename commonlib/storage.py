"""JSON list persistence for the local catalog backend.

Snapshots are written atomically (temp file + ``os.replace``) and the previous
generations are kept as ``.bakN`` files. Loading falls back to the newest
readable backup, so an interrupted write never leaves the catalog unreadable.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence
from uuid import uuid4

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class StoreError(RuntimeError):
    """Raised when a persistence operation fails."""


class ListStore:
    """Store a JSON array of records with atomic writes and backup recovery."""

    def __init__(
        self,
        path: Path | str,
        backups: int = 2,
        *,
        label: str = "records",
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.backups = max(0, backups)
        self.label = label
        # Held across read-modify-write so concurrent writers never interleave.
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    def _backup_path(self, index: int) -> Path:
        return self.path.with_suffix(self.path.suffix + f".bak{index}")

    def _generations(self) -> list[Path]:
        return [self.path, *(self._backup_path(idx) for idx in range(1, self.backups + 1))]

    def _read(self, path: Path) -> List[Record] | None:
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - surfaced to callers
            raise StoreError(str(exc)) from exc
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable %s file %s", self.label, path.name)
            return None
        if not isinstance(data, list):
            logger.warning("Ignoring %s file %s: expected a JSON array", self.label, path.name)
            return None
        return [dict(item) for item in data if isinstance(item, dict)]

    def _write(self, records: Sequence[Record]) -> None:
        payload = json.dumps(list(records), indent=2, default=str)
        tmp_path = self.path.with_suffix(self.path.suffix + f".{uuid4().hex}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:  # pragma: no cover - bubbled up to callers
            raise StoreError(str(exc)) from exc
        finally:
            tmp_path.unlink(missing_ok=True)

    def _rotate(self) -> None:
        # Shift .bak(N-1) -> .bakN down to the live file -> .bak1.
        for idx in range(self.backups, 0, -1):
            src = self.path if idx == 1 else self._backup_path(idx - 1)
            if not src.exists():
                continue
            try:
                os.replace(src, self._backup_path(idx))
            except OSError:
                logger.warning("Could not rotate %s backup %s", self.label, src.name)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load(self) -> List[Record]:
        with self._lock:
            for candidate in self._generations():
                data = self._read(candidate)
                if data is None:
                    continue
                if candidate != self.path:
                    logger.warning("Recovered %s from backup %s", self.label, candidate.name)
                return data
            return []

    def save(self, records: Iterable[Record]) -> List[Record]:
        snapshot = [dict(record) for record in records]
        with self._lock:
            self._rotate()
            self._write(snapshot)
        return snapshot

    def mutate(self, mutator: Callable[[List[Record]], Iterable[Record] | None]) -> List[Record]:
        """Load, let ``mutator`` edit (in place or by returning a new list), save.

        The whole cycle runs under the store lock, so two threads mutating the
        same store never lose each other's changes.
        """

        with self._lock:
            snapshot = self.load()
            outcome = mutator(snapshot)
            return self.save(snapshot if outcome is None else outcome)
