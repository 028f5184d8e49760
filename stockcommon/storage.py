"""JSON file persistence shared by the inventory tracker.

Every collection lives in its own JSON file and is always read and written as
a whole. Writes go through a temporary file that is fsynced and then moved over
the target with ``os.replace``, and the previous version is rotated into a
small ring of ``.bakN`` files. When the primary file is unreadable the newest
readable backup is used instead, and only when nothing usable remains does a
collection fall back to its empty default.

``Journal`` adds a write-ahead record for updates that span several files: the
full change set is written (atomically) before any collection is touched and
removed once every collection has been replaced.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a persistence operation fails."""


def atomic_write_json(path: Path, data: Any) -> None:
    """Write ``data`` to ``path`` so readers never observe a partial file."""

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        payload = json.dumps(data, indent=2)
        with tmp_path.open("w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as exc:
        raise StoreError(f"Could not write {path.name}: {exc}") from exc
    finally:
        tmp_path.unlink(missing_ok=True)


class JsonCollection:
    """A single JSON document holding one whole collection.

    Subclasses decide which top-level JSON type is acceptable and what the
    empty value looks like.
    """

    def __init__(self, path: Path | str, backups: int = 2, *, default: Any = None):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.backups = max(0, backups)
        self._default = default

    # ------------------------------------------------------------------
    # Shape hooks
    # ------------------------------------------------------------------
    def empty(self) -> Any:
        return copy.deepcopy(self._default)

    def accepts(self, data: Any) -> bool:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _backup_path(self, index: int) -> Path:
        return self.path.with_suffix(self.path.suffix + f".bak{index}")

    def _candidate_paths(self) -> list[Path]:
        return [self.path] + [self._backup_path(idx) for idx in range(1, self.backups + 1)]

    def _read(self, path: Path) -> Any | None:
        """Return the parsed document, or ``None`` when it is not usable."""

        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unreadable collection file %s: %s", path, exc)
            return None
        if not raw.strip():
            return self.empty()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt JSON in %s", path)
            return None
        if not self.accepts(data):
            logger.warning("Unexpected document shape in %s", path)
            return None
        return data

    def _rotate_backups(self) -> None:
        """Shift the backup ring and copy the current file into ``.bak1``.

        The primary is copied rather than moved so it stays in place until the
        new version replaces it.
        """

        if self.backups <= 0 or not self.path.exists():
            return
        try:
            for idx in range(self.backups, 1, -1):
                src = self._backup_path(idx - 1)
                if src.exists():
                    os.replace(src, self._backup_path(idx))
            shutil.copy2(self.path, self._backup_path(1))
        except OSError as exc:
            # Rotation is best effort; the new write still proceeds.
            logger.warning("Could not rotate backups for %s: %s", self.path.name, exc)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def ensure(self) -> None:
        """Materialize the empty default when neither the file nor a backup exists."""

        if not any(candidate.exists() for candidate in self._candidate_paths()):
            atomic_write_json(self.path, self.empty())

    def load(self) -> Any:
        for candidate in self._candidate_paths():
            data = self._read(candidate)
            if data is not None:
                if candidate != self.path:
                    logger.warning("Recovered %s from backup %s", self.path.name, candidate.name)
                return data
        return self.empty()

    def save(self, data: Any) -> Any:
        if not self.accepts(data):
            raise StoreError(f"Refusing to write {type(data).__name__} to {self.path.name}")
        self._rotate_backups()
        atomic_write_json(self.path, data)
        return data


class JsonStore(JsonCollection):
    """Collection stored as a JSON object keyed by identifier."""

    def __init__(self, path: Path | str, backups: int = 2, *, default: Mapping[str, Any] | None = None):
        super().__init__(path, backups, default=dict(default or {}))

    def accepts(self, data: Any) -> bool:
        return isinstance(data, dict)


class ListStore(JsonCollection):
    """Collection stored as a JSON array of records."""

    def __init__(self, path: Path | str, backups: int = 2):
        super().__init__(path, backups, default=[])

    def accepts(self, data: Any) -> bool:
        return isinstance(data, list)


class Journal:
    """Write-ahead record of a multi-collection update.

    The journal file maps collection names to their complete new value. It is
    written before any collection is replaced and deleted after all of them
    have been, so a leftover journal always describes a commit that must be
    rolled forward.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def pending(self) -> Dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            # A torn journal means the commit never started replacing files.
            logger.warning("Discarding unreadable journal %s: %s", self.path, exc)
            self.discard()
            return None
        if not isinstance(data, dict) or not isinstance(data.get("changes"), dict):
            self.discard()
            return None
        return data["changes"]

    def record(self, changes: Mapping[str, Any]) -> None:
        atomic_write_json(self.path, {"changes": dict(changes)})

    def discard(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Could not clear journal {self.path.name}: {exc}") from exc
