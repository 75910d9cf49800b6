from __future__ import annotations

import fcntl
import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping
from uuid import uuid4

from transit_insights.app.ports.output import IHistoryStore
from transit_insights.domain.exceptions import PersistenceError
from transit_insights.domain.models import HistoryIndexEntry

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"
INDEX_LOCK_FILENAME = "index.json.lock"


@dataclass(slots=True)
class LocalHistoryStore(IHistoryStore):
    """Stores history entries as JSON files in a directory.

    Env vars:
      - HISTORY_DIR: directory for index.json and snapshot files (default: data/history)

    Notes:
      - Files are written to a uniquely named temp file and then renamed over
        the target.
      - Index mutations hold an exclusive flock on index.json.lock, so the API
        and the worker process can both append to the same directory.
    """

    base_path: str | Path | None = None

    def _base(self) -> Path:
        value = self.base_path or os.getenv("HISTORY_DIR") or "data/history"
        base = Path(value)
        if not base.exists():
            base.mkdir(parents=True, exist_ok=True)
            logger.info("Created history data directory: %s", base)
        return base

    def _path(self, reference: str) -> Path:
        # References are bare file names; refuse anything that walks out of the directory.
        if Path(reference).name != reference:
            raise PersistenceError(f"Invalid history reference: {reference}")
        return self._base() / reference

    @contextmanager
    def _index_locked(self) -> Iterator[None]:
        lock_path = self._base() / INDEX_LOCK_FILENAME
        try:
            lock_fp = open(lock_path, "a", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to lock {INDEX_FILENAME}: {exc}") from exc
        with lock_fp:
            # Released when the file is closed.
            fcntl.flock(lock_fp.fileno(), fcntl.LOCK_EX)
            yield

    def _write_json(self, path: Path, payload: Any) -> None:
        tmp = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fp:
                json.dump(payload, fp, indent=2)
            tmp.replace(path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {path.name}: {exc}") from exc

    def _read_json(self, path: Path) -> Any | None:
        try:
            with path.open("r", encoding="utf-8") as fp:
                return json.load(fp)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read {path.name}: {exc}") from exc

    def _read_index(self) -> list[HistoryIndexEntry]:
        raw = self._read_json(self._base() / INDEX_FILENAME)
        if raw is None:
            return []
        try:
            return [HistoryIndexEntry.from_payload(s) for s in raw.get("snapshots", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Malformed history index: {exc}") from exc

    def _write_index(self, entries: list[HistoryIndexEntry]) -> None:
        self._write_json(
            self._base() / INDEX_FILENAME,
            {"snapshots": [e.to_payload() for e in entries]},
        )

    def list_index(self) -> list[HistoryIndexEntry]:
        return self._read_index()

    def append_index_entry(self, entry: HistoryIndexEntry) -> None:
        with self._index_locked():
            entries = self._read_index()
            entries.append(entry)
            self._write_index(entries)

    def prune_index(self, cutoff: int) -> list[HistoryIndexEntry]:
        with self._index_locked():
            entries = self._read_index()
            removed = [e for e in entries if e.timestamp < cutoff]
            if removed:
                self._write_index([e for e in entries if e.timestamp >= cutoff])
            return removed

    def read_entry(self, reference: str) -> Mapping[str, Any] | None:
        payload = self._read_json(self._path(reference))
        if payload is not None and not isinstance(payload, dict):
            raise PersistenceError(f"Malformed snapshot file: {reference}")
        return payload

    def write_entry(self, reference: str, payload: Mapping[str, Any]) -> None:
        self._write_json(self._path(reference), dict(payload))

    def delete_entry(self, reference: str) -> bool:
        path = self._path(reference)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"Failed to delete {reference}: {exc}") from exc
        return True
