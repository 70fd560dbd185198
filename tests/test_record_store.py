"""
Record store tests: bounded history, last-calculation slot, persistence.

Tests:
1-4.  Append, ordering and eviction
5-7.  Lookup and selection
8-9.  Clear
10-14. Persistence round trip and corrupt data recovery
15-17. Write atomicity
"""

import json

import pytest
from sqlalchemy.exc import IntegrityError

from kfss.estimator import Estimator, MonotonicIdGenerator
from kfss.exceptions import NotFoundError
from kfss.kv_store import MemoryKeyValueStore, SqlKeyValueStore
from kfss.record_store import LAST_CALCULATION_KEY, RECENT_CALCULATIONS_KEY, RecordStore
from kfss.schemas import EstimatorInput, ProjectInfo


# --- Test fixtures ---

def _make_results(count):
    """`count` results with ids 1000, 1001, ... and names Kitchen 1, Kitchen 2, ..."""
    estimator = Estimator(id_factory=MonotonicIdGenerator(clock=lambda: 1.0))
    return [
        estimator.compute(EstimatorInput(project=ProjectInfo(name=f"Kitchen {n}", client="Acme")))
        for n in range(1, count + 1)
    ]


# ============================================================
# Append / eviction
# ============================================================

def test_append_newest_first(kv):
    store = RecordStore(kv)
    a, b = _make_results(2)
    store.append(a)
    store.append(b)
    assert [r.id for r in store.all()] == [b.id, a.id]
    assert store.last_calculation().id == b.id


def test_history_capped_at_five(kv):
    """The 6th append evicts the oldest."""
    store = RecordStore(kv)
    results = _make_results(6)
    for r in results:
        store.append(r)
    history = store.all()
    assert len(history) == 5
    assert results[0].id not in [r.id for r in history]
    assert history[0].id == results[5].id


def test_custom_limit(kv):
    store = RecordStore(kv, limit=1)
    a, b = _make_results(2)
    store.append(a)
    store.append(b)
    assert [r.id for r in store.all()] == [b.id]
    assert store.get(a.id) is None
    assert store.last_calculation().id == b.id


def test_all_returns_snapshot(kv):
    store = RecordStore(kv)
    (a,) = _make_results(1)
    store.append(a)
    snapshot = store.all()
    store.clear()
    assert len(snapshot) == 1


# ============================================================
# Lookup / select
# ============================================================

def test_find_by_id_miss_raises(kv):
    store = RecordStore(kv)
    with pytest.raises(NotFoundError) as exc:
        store.find_by_id(42)
    assert exc.value.record_id == 42


def test_get_miss_returns_none(kv):
    assert RecordStore(kv).get(42) is None


def test_select_makes_record_last(kv):
    store = RecordStore(kv)
    a, b = _make_results(2)
    store.append(a)
    store.append(b)
    selected = store.select(a.id)
    assert selected.id == a.id
    assert store.last_calculation().id == a.id
    # History order is untouched
    assert [r.id for r in store.all()] == [b.id, a.id]


# ============================================================
# Clear
# ============================================================

def test_clear_empties_both(kv):
    store = RecordStore(kv)
    for r in _make_results(3):
        store.append(r)
    store.clear()
    assert store.all() == ()
    assert store.last_calculation() is None
    assert kv.get(RECENT_CALCULATIONS_KEY) is None
    assert kv.get(LAST_CALCULATION_KEY) is None


def test_clear_on_empty_store(kv):
    store = RecordStore(kv)
    store.clear()
    assert store.all() == ()


# ============================================================
# Persistence
# ============================================================

def test_reload_restores_history_and_last(kv):
    store = RecordStore(kv)
    results = _make_results(3)
    for r in results:
        store.append(r)
    store.select(results[0].id)

    reloaded = RecordStore(kv)
    reloaded.load_persisted()
    assert [r.id for r in reloaded.all()] == [r.id for r in reversed(results)]
    assert reloaded.last_calculation().id == results[0].id
    assert reloaded.all()[0].total_cost == pytest.approx(results[-1].total_cost)
    assert reloaded.max_id() == results[-1].id


def test_reload_through_sql_store(db):
    kv = SqlKeyValueStore(db)
    store = RecordStore(kv)
    (a,) = _make_results(1)
    store.append(a)

    reloaded = RecordStore(SqlKeyValueStore(db))
    reloaded.load_persisted()
    assert reloaded.find_by_id(a.id).project.name == "Kitchen 1"


def test_corrupt_history_starts_empty():
    kv = MemoryKeyValueStore({RECENT_CALCULATIONS_KEY: "{not json", LAST_CALCULATION_KEY: "[]"})
    store = RecordStore(kv)
    store.load_persisted()
    assert store.all() == ()
    assert store.last_calculation() is None


def test_history_not_a_list_starts_empty():
    kv = MemoryKeyValueStore({RECENT_CALCULATIONS_KEY: json.dumps({"id": 1})})
    store = RecordStore(kv)
    store.load_persisted()
    assert store.all() == ()


def test_unreadable_entries_skipped(kv):
    store = RecordStore(kv)
    (a,) = _make_results(1)
    store.append(a)
    entries = json.loads(kv.get(RECENT_CALCULATIONS_KEY))
    kv.set(RECENT_CALCULATIONS_KEY, json.dumps([{"garbage": True}] + entries))

    reloaded = RecordStore(kv)
    reloaded.load_persisted()
    assert [r.id for r in reloaded.all()] == [a.id]


# ============================================================
# Write atomicity
# ============================================================

class _FailingStore(MemoryKeyValueStore):
    """Rejects every multi-key write."""

    def set_many(self, items):
        raise RuntimeError("disk full")


def test_failed_append_keeps_previous_state():
    kv = _FailingStore()
    store = RecordStore(kv)
    (a,) = _make_results(1)
    with pytest.raises(RuntimeError):
        store.append(a)
    assert store.all() == ()
    assert store.last_calculation() is None
    assert kv.get(RECENT_CALCULATIONS_KEY) is None
    assert kv.get(LAST_CALCULATION_KEY) is None


def test_sql_set_many_is_all_or_nothing(db):
    kv = SqlKeyValueStore(db)
    kv.set(LAST_CALCULATION_KEY, "old")
    # value column is NOT NULL, so the second row fails the commit
    with pytest.raises(IntegrityError):
        kv.set_many({LAST_CALCULATION_KEY: "new", RECENT_CALCULATIONS_KEY: None})
    assert kv.get(LAST_CALCULATION_KEY) == "old"
    assert kv.get(RECENT_CALCULATIONS_KEY) is None


def test_append_writes_both_keys_through_sql(db):
    store = RecordStore(SqlKeyValueStore(db))
    (a,) = _make_results(1)
    store.append(a)
    kv = SqlKeyValueStore(db)
    assert json.loads(kv.get(RECENT_CALCULATIONS_KEY))[0]["id"] == a.id
    assert json.loads(kv.get(LAST_CALCULATION_KEY))["id"] == a.id
