"""
ordering.py
Keep the records' load order contiguous and their enabled state consistent
with the files on disk.

Order values: sorting all records by ``order`` always yields 0, 1, ..., N-1.
normalize() is the one place that reassigns them; every structural change
(insert, delete, move) ends with it, which also persists the store.

Index 0 (top of the list) is loaded first by the game.
"""

from __future__ import annotations

import logging
from typing import Iterable

from baldursmm.app_log import app_log
from baldursmm.errors import PersistFailed, StagingFailed
from baldursmm.models import ModRecord
from baldursmm.record_store import RecordStore
from baldursmm.staging import ModStager


class OrderManager:

    def __init__(self, store: RecordStore, stager: ModStager):
        self.store = store
        self.stager = stager

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def ordered_records(self) -> list[ModRecord]:
        return self.store.fetch()

    def enabled_records(self) -> list[ModRecord]:
        return self.store.fetch(lambda r: r.enabled)

    def next_order_value(self) -> int:
        records = self.store.fetch()
        if not records:
            return 0
        return max(r.order for r in records) + 1

    # -----------------------------------------------------------------------
    # Normalization
    # -----------------------------------------------------------------------

    def normalize(self) -> None:
        """Reassign order 0..N-1 in current order and persist."""
        for updated_order, record in enumerate(self.store.fetch()):
            if record.order != updated_order:
                app_log(f"Updated order for {record.name} to {updated_order}", logging.DEBUG)
            record.order = updated_order
        self.store.save()

    def _normalize_after_failure(self) -> None:
        """Normalize while another error is propagating.

        A save failure here is logged by the store and must not replace the
        error that aborted the operation.
        """
        try:
            self.normalize()
        except PersistFailed as exc:
            app_log(f"Order values were not saved after a failed change: {exc}",
                    logging.WARNING)

    def _apply_sequence(self, records: list[ModRecord]) -> None:
        for index, record in enumerate(records):
            record.order = index
        self.normalize()

    # -----------------------------------------------------------------------
    # Reordering
    # -----------------------------------------------------------------------

    def move(self, offsets: Iterable[int], destination: int) -> None:
        """Move the records at offsets so they sit before index destination.

        Same semantics as a list view's drag-and-drop: destination is an
        index into the list *before* the moved rows are removed, and may be
        len(records) to move rows to the end.
        """
        records = self.store.fetch()
        picked = sorted({i for i in offsets if 0 <= i < len(records)})
        if not picked:
            return
        destination = max(0, min(destination, len(records)))
        moving = [records[i] for i in picked]
        remaining = [r for i, r in enumerate(records) if i not in picked]
        insert_at = destination - sum(1 for i in picked if i < destination)
        remaining[insert_at:insert_at] = moving
        self._apply_sequence(remaining)
        app_log(f"Moved {', '.join(r.name for r in moving)} to position {insert_at}")

    def move_to(self, source: int, target: int) -> None:
        """Move one record so that it ends up at index target."""
        count = len(self.store)
        if not (0 <= source < count) or not (0 <= target < count) or source == target:
            return
        self.move([source], target + 1 if target > source else target)

    # -----------------------------------------------------------------------
    # Enable / disable
    # -----------------------------------------------------------------------

    def set_enabled(self, record: ModRecord, enabled: bool) -> None:
        """Deploy (enable) or reverse (disable) the record's .pak, then persist.

        The flag only changes once the file move succeeded; StagingFailed or
        ReversalFailed propagate.
        """
        if record.enabled == enabled:
            return
        if enabled:
            self.stager.deploy(record)
        else:
            self.stager.reverse(record)
        record.enabled = enabled
        self.store.save()

    # -----------------------------------------------------------------------
    # Deletion
    # -----------------------------------------------------------------------

    def _remove(self, record: ModRecord) -> None:
        """Reverse if enabled, drop from the store, trash the payload."""
        if record.enabled:
            # ReversalFailed propagates; the record stays untouched
            self.stager.reverse(record)
            record.enabled = False
        self.store.delete(record)
        try:
            self.stager.discard(record.directory)
        except StagingFailed as exc:
            app_log(f"Deleted {record.name} but its folder was left behind: {exc}",
                    logging.WARNING)
        app_log(f"Deleted mod item with order: {record.order}, name: {record.name}")

    def delete(self, record: ModRecord) -> None:
        """Remove one record (see _remove) and normalize."""
        try:
            self._remove(record)
        except BaseException:
            self._normalize_after_failure()
            raise
        self.normalize()

    def delete_at(self, indices: Iterable[int]) -> int | None:
        """Delete records by list position and return the index to select next.

        The row preceding the lowest deleted position is selected (the first
        row when that was position 0); None when the list is now empty.
        """
        records = self.store.fetch()
        picked = sorted({i for i in indices if 0 <= i < len(records)}, reverse=True)
        if not picked:
            return None
        try:
            for index in picked:
                self._remove(records[index])
        except BaseException:
            self._normalize_after_failure()
            raise
        self.normalize()
        if not len(self.store):
            return None
        return min(max(picked[-1] - 1, 0), len(self.store) - 1)
