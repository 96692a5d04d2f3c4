from __future__ import annotations

import threading
from typing import Any, Dict


class Metrics:
    """
    In-process counters and latency summaries.

    Process-local only; nothing is exported or persisted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._timers: Dict[str, Dict[str, float]] = {}

    def inc(self, name: str, n: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + int(n)

    def observe_ms(self, name: str, ms: float) -> None:
        with self._lock:
            t = self._timers.setdefault(name, {"count": 0, "total_ms": 0.0, "max_ms": 0.0})
            t["count"] += 1
            t["total_ms"] += float(ms)
            t["max_ms"] = max(t["max_ms"], float(ms))

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timers": {k: dict(v) for k, v in self._timers.items()},
            }
