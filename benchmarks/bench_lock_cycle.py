"""Benchmark: lock cycle throughput — operations per second.

Measures how many read_exclusive + update_and_release cycles complete per
second for each strategy against the in-memory store.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from session_state_lock.engine import DirectLockEngine, ProcedureLockEngine
from session_state_lock.keys import KeyDeriver
from session_state_lock.store.memory import InMemoryStoreClient

_ITERATIONS: int = 5_000


def bench_lock_cycle(engine_cls: type) -> dict[str, object]:
    """Benchmark one strategy's acquire/update/release cycle.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    store = InMemoryStoreClient()
    engine = engine_cls(store, KeyDeriver("bench", "sessions", "bench"))
    engine.write("session", 600, {"counter": 0})

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        result = engine.read_exclusive("session")
        result.items["counter"] += 1
        engine.update_and_release("session", result.lock_id, 600, result.items)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    total = sum(latencies_ms) / 1000
    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)

    result: dict[str, object] = {
        "operation": f"lock_cycle_{engine.strategy}",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_lock_cycle] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> list[dict[str, object]]:
    """Entry point returning one result dict per strategy."""
    return [bench_lock_cycle(DirectLockEngine), bench_lock_cycle(ProcedureLockEngine)]


if __name__ == "__main__":
    results = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "lock_cycle_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
