from __future__ import annotations

import pytest

from baldursmm.errors import ReplaceFailed, ReversalFailed, StagingFailed
from baldursmm.identity import IdentityResolver
from baldursmm.models import ImportOutcome
from baldursmm.ordering import OrderManager
from baldursmm.record_store import RecordStore

from conftest import make_record


class StubStager:
    def __init__(self, reverse_error=None, discard_error=None):
        self.reverse_error = reverse_error
        self.discard_error = discard_error
        self.reversed: list[str] = []
        self.discarded: list = []

    def reverse(self, record):
        if self.reverse_error:
            raise self.reverse_error
        self.reversed.append(record.uuid)

    def discard(self, path):
        if self.discard_error:
            raise self.discard_error
        self.discarded.append(path)
        return True


def _resolver(records, stager=None) -> IdentityResolver:
    store = RecordStore(None, records)
    return IdentityResolver(OrderManager(store, stager or StubStager()))


def _orders(resolver: IdentityResolver) -> dict[str, int]:
    return {r.uuid: r.order for r in resolver.orders.ordered_records()}


def test_fresh_import_goes_to_the_end():
    resolver = _resolver([make_record("A", 0), make_record("B", 1)])
    record = make_record("X", 0)

    assert resolver.upsert(record) is ImportOutcome.ADDED
    assert record.order == 2
    assert _orders(resolver) == {"A": 0, "B": 1, "X": 2}


def test_first_import_gets_order_zero():
    resolver = _resolver([])
    record = make_record("X", 5)
    resolver.upsert(record)
    assert record.order == 0


def test_resolve_reports_existing_slot():
    old = make_record("X", 2)
    resolver = _resolver([make_record("A", 0), make_record("B", 1), old, make_record("C", 3)])
    resolution = resolver.resolve("X")
    assert resolution.is_replace
    assert resolution.existing is old
    assert resolution.order == 2


def test_replace_keeps_order_slot_and_others():
    old = make_record("X", 2, True, directory_path="/store/OldX")
    stager = StubStager()
    resolver = _resolver(
        [make_record("A", 0), make_record("B", 1), old, make_record("C", 3)], stager,
    )
    new = make_record("X", 0, name="Newer X", directory_path="/downloads/NewX")

    assert resolver.upsert(new) is ImportOutcome.UPDATED

    assert new.order == 2
    assert _orders(resolver) == {"A": 0, "B": 1, "X": 2, "C": 3}
    assert resolver.orders.store.find("X") is new
    assert len(resolver.orders.store) == 4
    assert stager.reversed == ["X"]
    assert [str(p) for p in stager.discarded] == [str(old.directory)]


def test_replace_of_disabled_mod_skips_reversal():
    old = make_record("X", 0, False, directory_path="/store/X")
    stager = StubStager()
    resolver = _resolver([old], stager)
    resolver.upsert(make_record("X", 0, directory_path="/downloads/X"))
    assert stager.reversed == []


@pytest.mark.parametrize("stager", [
    StubStager(reverse_error=ReversalFailed("busy")),
    StubStager(discard_error=StagingFailed("no trash")),
])
def test_replace_failure_creates_nothing(stager):
    old = make_record("X", 1, True, directory_path="/store/X")
    resolver = _resolver([make_record("A", 0), old], stager)
    new = make_record("X", 0, directory_path="/downloads/X")

    with pytest.raises(ReplaceFailed):
        resolver.upsert(new)

    assert resolver.orders.store.find("X") is old
    assert new not in resolver.orders.store
    assert _orders(resolver) == {"A": 0, "X": 1}
