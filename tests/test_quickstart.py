"""Test that the quickstart API works for session-state-lock."""
from __future__ import annotations


def test_quickstart_import() -> None:
    import session_state_lock

    assert session_state_lock.__version__ == "0.1.0"


def test_quickstart_lock_cycle() -> None:
    from session_state_lock import InMemoryStoreClient, SessionStoreContext, Unlocked

    with SessionStoreContext(store=InMemoryStoreClient()) as engine:
        engine.create_uninitialized("visitor-1", 60)
        result = engine.read_exclusive("visitor-1")
        assert isinstance(result, Unlocked)
        result.items["theme"] = "dark"
        assert engine.update_and_release("visitor-1", result.lock_id, 60, result.items)


def test_quickstart_second_request_waits() -> None:
    from session_state_lock import InMemoryStoreClient, Locked, SessionStoreContext

    with SessionStoreContext(store=InMemoryStoreClient()) as engine:
        engine.create_uninitialized("visitor-1", 60)
        engine.read_exclusive("visitor-1")
        assert isinstance(engine.read_exclusive("visitor-1"), Locked)


def test_quickstart_provider() -> None:
    from session_state_lock import (
        InMemoryStoreClient,
        SessionStateStore,
        SessionStoreContext,
        StoreConfig,
    )

    store = SessionStateStore(
        SessionStoreContext(StoreConfig(use_procedures=True), store=InMemoryStoreClient())
    )
    store.set_and_release_item_exclusive("visitor-1", {"n": 1}, 60, None, new_item=True)
    assert dict(store.get_item("visitor-1").items) == {"n": 1}
    store.close()


def test_quickstart_all_exports_resolve() -> None:
    import session_state_lock

    for name in session_state_lock.__all__:
        assert hasattr(session_state_lock, name), name
