#!/usr/bin/env python3
"""Example: Lock strategies — session-state-lock

Runs the same contended workload against both strategies:

- direct     — client-side read then generation-guarded write
- procedure  — one server-side procedure call per step

Usage:
    python examples/02_strategies.py

Requirements:
    pip install session-state-lock
"""
from __future__ import annotations

import threading

from session_state_lock import (
    InMemoryStoreClient,
    SessionStoreContext,
    StoreConfig,
    Unlocked,
)

_WORKERS = 8
_SESSION = "shared-session"


def run(use_procedures: bool) -> None:
    config = StoreConfig(use_procedures=use_procedures)
    with SessionStoreContext(config, store=InMemoryStoreClient()) as engine:
        engine.write(_SESSION, 60, {"hits": 0})
        barrier = threading.Barrier(_WORKERS)
        winners: list[int] = []

        def worker() -> None:
            barrier.wait()
            result = engine.read_exclusive(_SESSION)
            if isinstance(result, Unlocked):
                result.items["hits"] += 1
                engine.update_and_release(_SESSION, result.lock_id, 60, result.items)
                winners.append(result.lock_id)

        threads = [threading.Thread(target=worker) for _ in range(_WORKERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = engine.read_non_exclusive(_SESSION)
        print(
            f"{engine.strategy:>9}: {_WORKERS} workers, {len(winners)} acquired "
            f"lock {winners}, hits={final.items['hits']}"
        )


def main() -> None:
    run(use_procedures=False)
    run(use_procedures=True)


if __name__ == "__main__":
    main()
