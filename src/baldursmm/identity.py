"""
identity.py
Decide whether an imported mod is new or replaces an installed one.

Mods are identified by the UUID from their info.json.  Importing a UUID that
is already installed replaces the old record *in place*: the new record takes
over the old order value, so its load-order position and the positions of all
other mods stay the same.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from baldursmm.app_log import app_log
from baldursmm.errors import ReplaceFailed, ReversalFailed, StagingFailed
from baldursmm.models import ImportOutcome, ModRecord
from baldursmm.ordering import OrderManager


@dataclass(frozen=True)
class Resolution:
    order: int
    existing: ModRecord | None = None

    @property
    def is_replace(self) -> bool:
        return self.existing is not None


class IdentityResolver:

    def __init__(self, orders: OrderManager):
        self.orders = orders

    def resolve(self, uuid: str) -> Resolution:
        """Find the slot a record with this UUID should take."""
        for record in self.orders.ordered_records():
            if record.uuid == uuid:
                return Resolution(order=record.order, existing=record)
        return Resolution(order=self.orders.next_order_value())

    def upsert(self, record: ModRecord) -> ImportOutcome:
        """Insert record, or swap it in for the installed record with its UUID.

        On replace the old payload is reversed (if enabled) and trashed before
        the swap; any failure there raises ReplaceFailed and leaves the store
        without the new record.
        """
        store = self.orders.store
        resolution = self.resolve(record.uuid)
        record.order = resolution.order

        if not resolution.is_replace:
            store.insert(record)
            self.orders.normalize()
            app_log(f"Adding new mod item with order: {record.order}, name: {record.name}")
            return ImportOutcome.ADDED

        existing = resolution.existing
        try:
            if existing.enabled:
                self.orders.stager.reverse(existing)
                existing.enabled = False
            if existing.directory_path != record.directory_path:
                self.orders.stager.discard(existing.directory)
        except (ReversalFailed, StagingFailed) as exc:
            app_log(f"Error: Unable to replace mod {existing.name}: {exc}", logging.ERROR)
            store.save()
            raise ReplaceFailed(f"Unable to replace existing mod {existing.name}") from exc

        store.replace(existing, record)
        self.orders.normalize()
        app_log(f"Replaced mod item with order: {record.order}, name: {record.name}")
        return ImportOutcome.UPDATED
