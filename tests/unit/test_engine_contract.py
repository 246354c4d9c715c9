"""Behaviour shared by both lock strategies.

Every test here runs once against ``DirectLockEngine`` and once against
``ProcedureLockEngine``, both over ``InMemoryStoreClient``.
"""
from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from session_state_lock.engine import DirectLockEngine, ProcedureLockEngine
from session_state_lock.engine.base import SessionLockEngine
from session_state_lock.items import JsonItemCodec
from session_state_lock.results import Locked, NotFound, Unlocked
from session_state_lock.store.memory import InMemoryStoreClient

SESSION = "s1"


@pytest.fixture(params=["direct", "procedure"])
def engine(request, store, deriver, clock) -> SessionLockEngine:
    engine_cls = DirectLockEngine if request.param == "direct" else ProcedureLockEngine
    return engine_cls(store, deriver, codec=JsonItemCodec(), clock=clock)


@pytest.fixture()
def key(deriver):
    return deriver.derive(SESSION)


def _snapshot(store: InMemoryStoreClient, key):
    return store.get(key)


# ---------------------------------------------------------------------------
# Creation and non-exclusive reads
# ---------------------------------------------------------------------------


class TestCreateAndRead:
    def test_read_missing_session(self, engine: SessionLockEngine) -> None:
        assert engine.read_non_exclusive(SESSION) == NotFound()

    def test_uninitialized_record(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)
        result = engine.read_non_exclusive(SESSION)
        assert isinstance(result, Unlocked)
        assert result.lock_id == 0
        assert result.timeout == 10
        assert result.initialize is True
        assert dict(result.items) == {}

    def test_create_sets_record_ttl(self, engine, store, key) -> None:
        engine.create_uninitialized(SESSION, 10)
        assert store.ttl_remaining(key) == 10

    def test_written_record_is_initialized(self, engine: SessionLockEngine) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        result = engine.read_non_exclusive(SESSION)
        assert isinstance(result, Unlocked)
        assert result.initialize is False
        assert result.lock_id == 0
        assert dict(result.items) == {"k": "v"}

    def test_create_overwrites_existing_items(self, engine: SessionLockEngine) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        engine.create_uninitialized(SESSION, 60)
        result = engine.read_non_exclusive(SESSION)
        assert result.initialize is True
        assert dict(result.items) == {}

    def test_non_exclusive_read_does_not_lock(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)
        engine.read_non_exclusive(SESSION)
        assert isinstance(engine.read_exclusive(SESSION), Unlocked)

    def test_record_expires(self, engine: SessionLockEngine, monotonic) -> None:
        engine.create_uninitialized(SESSION, 10)
        monotonic.advance(11)
        assert engine.read_non_exclusive(SESSION) == NotFound()


# ---------------------------------------------------------------------------
# Exclusive reads
# ---------------------------------------------------------------------------


class TestReadExclusive:
    def test_missing_session_is_not_created(self, engine, store) -> None:
        assert engine.read_exclusive(SESSION) == NotFound()
        assert len(store) == 0

    def test_first_caller_acquires(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)
        result = engine.read_exclusive(SESSION)
        assert isinstance(result, Unlocked)
        assert result.lock_id == 1
        assert result.locked is False

    def test_second_caller_sees_lock(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)
        engine.read_exclusive(SESSION)
        assert engine.read_exclusive(SESSION) == Locked(lock_id=1, lock_age=timedelta(0))

    def test_lock_age_grows(self, engine: SessionLockEngine, clock) -> None:
        engine.create_uninitialized(SESSION, 60)
        engine.read_exclusive(SESSION)
        clock.advance(30)
        result = engine.read_exclusive(SESSION)
        assert isinstance(result, Locked)
        assert result.lock_age == timedelta(seconds=30)

    def test_non_exclusive_read_hides_items_while_locked(self, engine) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        engine.read_exclusive(SESSION)
        result = engine.read_non_exclusive(SESSION)
        assert isinstance(result, Locked)
        assert result.lock_id == 1

    def test_acquire_returns_items(self, engine: SessionLockEngine) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        result = engine.read_exclusive(SESSION)
        assert dict(result.items) == {"k": "v"}
        assert result.timeout == 60
        assert result.initialize is False

    def test_acquire_refreshes_ttl(self, engine, store, key, monotonic) -> None:
        engine.create_uninitialized(SESSION, 10)
        monotonic.advance(6)
        engine.read_exclusive(SESSION)
        assert store.ttl_remaining(key) == 10

    def test_lock_ids_increase(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 60)
        seen = []
        for _ in range(3):
            result = engine.read_exclusive(SESSION)
            seen.append(result.lock_id)
            assert engine.release_only(SESSION, result.lock_id, 60) is True
        assert seen == [1, 2, 3]

    def test_concurrent_callers_get_one_winner(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 60)
        callers = 16
        barrier = threading.Barrier(callers)
        results = []
        results_lock = threading.Lock()

        def _acquire() -> None:
            barrier.wait(timeout=5)
            result = engine.read_exclusive(SESSION)
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=_acquire) for _ in range(callers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        winners = [r for r in results if isinstance(r, Unlocked)]
        assert len(results) == callers
        assert len(winners) == 1
        assert all(isinstance(r, Locked) for r in results if r is not winners[0])


# ---------------------------------------------------------------------------
# Ownership-gated mutations
# ---------------------------------------------------------------------------


class TestOwnership:
    def test_documented_request_cycle(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)

        first = engine.read_exclusive(SESSION)
        assert first.lock_id == 1
        assert engine.read_exclusive(SESSION).lock_id == 1

        assert engine.update_and_release(SESSION, 1, 300, {"key": "value"}) is True

        result = engine.read_non_exclusive(SESSION)
        assert isinstance(result, Unlocked)
        assert dict(result.items) == {"key": "value"}
        assert result.timeout == 300

    def test_update_sets_ttl(self, engine, store, key) -> None:
        engine.create_uninitialized(SESSION, 10)
        engine.read_exclusive(SESSION)
        engine.update_and_release(SESSION, 1, 300, {"k": "v"})
        assert store.ttl_remaining(key) == 300

    def test_update_with_none_stores_empty_items(self, engine: SessionLockEngine) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        engine.read_exclusive(SESSION)
        assert engine.update_and_release(SESSION, 1, 60, None) is True
        result = engine.read_non_exclusive(SESSION)
        assert dict(result.items) == {}
        assert result.initialize is False

    def test_stale_lock_id_changes_nothing(self, engine, store, key) -> None:
        engine.write(SESSION, 60, {"k": "v"})
        engine.read_exclusive(SESSION)
        before = _snapshot(store, key)

        assert engine.update_and_release(SESSION, 999, 60, {"k": "x"}) is False
        assert engine.release_only(SESSION, 999, 60) is False
        assert engine.remove(SESSION, 999) is False

        assert _snapshot(store, key) == before

    def test_release_keeps_items(self, engine: SessionLockEngine) -> None:
        engine.write(SESSION, 60, {"a": 1})
        engine.read_exclusive(SESSION)
        assert engine.release_only(SESSION, 1, 120) is True
        result = engine.read_non_exclusive(SESSION)
        assert isinstance(result, Unlocked)
        assert dict(result.items) == {"a": 1}
        assert result.timeout == 120

    def test_remove_by_owner(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 60)
        engine.read_exclusive(SESSION)
        assert engine.remove(SESSION, 1) is True
        assert engine.read_non_exclusive(SESSION) == NotFound()

    def test_remove_unlocked_record_with_current_lock_id(self, engine) -> None:
        engine.create_uninitialized(SESSION, 60)
        engine.read_exclusive(SESSION)
        engine.release_only(SESSION, 1, 60)
        assert engine.remove(SESSION, 1) is True
        assert engine.read_non_exclusive(SESSION) == NotFound()

    def test_mutations_on_missing_session(self, engine, store) -> None:
        assert engine.update_and_release(SESSION, 1, 60, {"k": "v"}) is False
        assert engine.release_only(SESSION, 1, 60) is False
        assert engine.remove(SESSION, 1) is False
        assert len(store) == 0


# ---------------------------------------------------------------------------
# reset_timeout
# ---------------------------------------------------------------------------


class TestResetTimeout:
    def test_refreshes_existing_record(self, engine, store, key, monotonic) -> None:
        engine.create_uninitialized(SESSION, 10)
        monotonic.advance(5)
        assert engine.reset_timeout(SESSION, 600) is True
        assert store.ttl_remaining(key) == 600
        assert engine.read_non_exclusive(SESSION).timeout == 600

    def test_missing_record_is_not_created(self, engine, store) -> None:
        assert engine.reset_timeout(SESSION, 600) is False
        assert len(store) == 0

    def test_does_not_touch_lock(self, engine: SessionLockEngine) -> None:
        engine.create_uninitialized(SESSION, 10)
        engine.read_exclusive(SESSION)
        engine.reset_timeout(SESSION, 600)
        assert isinstance(engine.read_exclusive(SESSION), Locked)
