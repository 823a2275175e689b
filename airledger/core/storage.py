"""
AirLedger Snapshot Storage
===========================

Durable storage for ledger snapshots.  The ledger only depends on the
two-method :class:`SnapshotStore` interface (``save`` / ``load``) so the
on-disk encoding can be swapped; :class:`JsonSnapshotStore` is the default
JSON implementation.

Writes are atomic: the snapshot is written to a temporary file in the same
directory and moved over the target with :func:`os.replace`, so a crash in
the middle of a save never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from shared.logger import AirLogger

logger = AirLogger("core.storage")


class SnapshotError(Exception):
    """Raised when a persisted snapshot cannot be read or parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Unreadable snapshot {self.path}: {reason}")


class SnapshotStore:
    """Interface for ledger snapshot persistence."""

    def save(self, snapshot: dict[str, Any]) -> bool:
        """Persist *snapshot*; return ``False`` (never raise) on I/O failure."""
        raise NotImplementedError

    def load(self) -> Optional[dict[str, Any]]:
        """Return the last saved snapshot, ``None`` if nothing was saved.

        Raises:
            SnapshotError: The stored data exists but is unreadable.
        """
        raise NotImplementedError


class JsonSnapshotStore(SnapshotStore):
    """Snapshot store writing one pretty-printed JSON document.

    Args:
        path: Target file; parent directories are created on first save.
        indent: JSON indentation (``None`` for compact output).
    """

    def __init__(self, path: str | Path, indent: Optional[int] = 2) -> None:
        self._path = Path(path)
        self._indent = indent

    @property
    def path(self) -> Path:
        return self._path

    def save(self, snapshot: dict[str, Any]) -> bool:
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp",
                dir=str(self._path.parent),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh, indent=self._indent, ensure_ascii=False)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            logger.error(f"Snapshot save to {self._path} failed: {exc}")
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Could not remove temporary file {tmp_name}")
        logger.debug(f"Snapshot written to {self._path}")
        return True

    def load(self) -> Optional[dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SnapshotError(self._path, str(exc)) from exc
        if not isinstance(data, dict):
            raise SnapshotError(self._path, "top-level value is not an object")
        return data
