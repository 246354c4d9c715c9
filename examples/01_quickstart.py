#!/usr/bin/env python3
"""Example: Quickstart — session-state-lock

Minimal working example: create a session record, lock it for one
request, show that a concurrent request is told to wait, then save the
items and release the lock.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install session-state-lock
"""
from __future__ import annotations

import session_state_lock
from session_state_lock import (
    InMemoryStoreClient,
    Locked,
    SessionStoreContext,
    StoreConfig,
    Unlocked,
)


def main() -> None:
    print(f"session-state-lock version: {session_state_lock.__version__}")

    config = StoreConfig(application_name="shop", session_timeout=600)
    with SessionStoreContext(config, store=InMemoryStoreClient()) as engine:
        # Step 1: a new visitor gets an empty record
        engine.create_uninitialized("visitor-42", config.session_timeout)

        # Step 2: the first request takes the lock
        first = engine.read_exclusive("visitor-42")
        assert isinstance(first, Unlocked)
        print(f"Request A holds lock {first.lock_id} (initialize={first.initialize})")

        # Step 3: a concurrent request on the same session must wait
        second = engine.read_exclusive("visitor-42")
        assert isinstance(second, Locked)
        print(f"Request B sees lock {second.lock_id}, age {second.lock_age.total_seconds():.3f}s")

        # Step 4: request A saves its items and releases the lock
        first.items["cart"] = ["sku-1", "sku-7"]
        saved = engine.update_and_release("visitor-42", first.lock_id, config.session_timeout, first.items)
        print(f"Request A saved: {saved}")

        # Step 5: request B retries and now gets the items
        retry = engine.read_exclusive("visitor-42")
        assert isinstance(retry, Unlocked)
        print(f"Request B holds lock {retry.lock_id}, cart={retry.items['cart']}")
        engine.release_only("visitor-42", retry.lock_id, config.session_timeout)


if __name__ == "__main__":
    main()
