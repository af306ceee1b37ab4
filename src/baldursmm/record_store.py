"""
record_store.py
Durable storage of ModRecords in a single JSON file (mods.json).

Format:
    {
      "version": 1,
      "mods": [ {<ModRecord fields>}, ... ]
    }

The store keeps records in memory and only touches disk in load() and
save().  save() writes the whole file through a temporary sibling and
os.replace(), so a crash never leaves a half-written mods.json behind.
An unreadable mods.json is renamed to mods.json.bad before the store starts
empty, so the next save() cannot overwrite it.

The store is not thread-safe: all access happens on the caller's (main)
thread.  Background staging workers never see records.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from baldursmm.app_log import app_log
from baldursmm.errors import PersistFailed
from baldursmm.fsutil import write_text_atomic
from baldursmm.models import ModRecord

_FORMAT_VERSION = 1
_BAD_SUFFIX = ".bad"


def _set_aside(path: Path) -> Path:
    bad = path.with_name(path.name + _BAD_SUFFIX)
    try:
        os.replace(path, bad)
    except OSError as exc:
        raise PersistFailed(f"Unable to move unreadable {path} aside: {exc}") from exc
    app_log(f"Moved unreadable record store to {bad}", logging.WARNING)
    return bad


class RecordStore:
    """Key-indexed (by uuid) record collection with an atomic save.

    path=None gives a purely in-memory store whose save() only validates
    serialization.
    """

    def __init__(self, path: Path | None = None,
                 records: Iterable[ModRecord] = ()):
        self._path = path
        self._records: list[ModRecord] = list(records)

    @classmethod
    def load(cls, path: Path) -> "RecordStore":
        """Open mods.json; a missing file yields an empty store.

        An unreadable file is moved aside (see _set_aside) and an empty store
        is returned; raises PersistFailed when it cannot be moved.
        """
        store = cls(path)
        if not path.is_file():
            return store
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            # ValueError covers both JSONDecodeError and UnicodeDecodeError
            app_log(f"Unable to read record store {path}: {exc}", logging.ERROR)
            _set_aside(path)
            return store
        if not isinstance(data, dict) or not isinstance(data.get("mods", []), list):
            app_log(f"Unexpected content in record store {path}", logging.ERROR)
            _set_aside(path)
            return store
        raw = data.get("mods", [])
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                store._records.append(ModRecord.from_dict(item))
            except TypeError as exc:
                app_log(f"Skipping unreadable mod record {item!r}: {exc}", logging.WARNING)
        return store

    @property
    def path(self) -> Path | None:
        return self._path

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def fetch(self, predicate: Callable[[ModRecord], bool] | None = None) -> list[ModRecord]:
        """Return matching records sorted by order (ties keep insertion order)."""
        matches = [r for r in self._records if predicate is None or predicate(r)]
        return sorted(matches, key=lambda r: r.order)

    def find(self, uuid: str) -> ModRecord | None:
        for record in self._records:
            if record.uuid == uuid:
                return record
        return None

    def __contains__(self, record: ModRecord) -> bool:
        return any(r is record for r in self._records)

    # -----------------------------------------------------------------------
    # Mutations (in memory until save())
    # -----------------------------------------------------------------------

    def insert(self, record: ModRecord) -> None:
        if self.find(record.uuid) is not None:
            raise ValueError(f"A record with UUID {record.uuid} already exists")
        self._records.append(record)

    def delete(self, record: ModRecord) -> None:
        for idx, existing in enumerate(self._records):
            if existing is record:
                del self._records[idx]
                return
        raise KeyError(record.uuid)

    def replace(self, old: ModRecord, new: ModRecord) -> None:
        """Swap old for new in a single step."""
        for idx, existing in enumerate(self._records):
            if existing is old:
                self._records[idx] = new
                return
        raise KeyError(old.uuid)

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    def save(self) -> None:
        """Persist every record; raises PersistFailed (in-memory state is kept)."""
        data = {
            "version": _FORMAT_VERSION,
            "mods": [r.to_dict() for r in self.fetch()],
        }
        text = json.dumps(data, indent=2)
        if self._path is None:
            return
        try:
            write_text_atomic(self._path, text)
        except OSError as exc:
            app_log(f"Error saving mod records to {self._path}: {exc}", logging.ERROR)
            raise PersistFailed(f"Unable to save {self._path}: {exc}") from exc
