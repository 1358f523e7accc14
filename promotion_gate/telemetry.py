from __future__ import annotations

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterable, List

MetricStore = Dict[str, List[float]]
_durations: MetricStore = defaultdict(list)
_counters: Dict[str, int] = defaultdict(int)
_lock = threading.Lock()


@contextmanager
def span(name: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        with _lock:
            _durations[name].append(duration_ms)


def count(name: str, amount: int = 1) -> None:
    with _lock:
        _counters[name] += amount


def collect_metrics() -> MetricStore:
    with _lock:
        return {k: list(v) for k, v in _durations.items()}


def collect_counters() -> Dict[str, int]:
    with _lock:
        return dict(_counters)


def summary() -> Dict[str, object]:
    spans = {
        name: {'calls': len(values), 'p95_ms': p95(values)}
        for name, values in collect_metrics().items()
    }
    return {'spans': spans, 'counters': collect_counters()}


def reset_metrics() -> None:
    with _lock:
        _durations.clear()
        _counters.clear()


def p95(durations_ms: Iterable[float]) -> float:
    values = sorted(durations_ms)
    if not values:
        return 0.0
    index = max(0, int(round(0.95 * (len(values) - 1))))
    return round(values[index], 2)
