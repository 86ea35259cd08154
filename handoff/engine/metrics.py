from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List
import statistics
import threading
import time


@dataclass
class Metrics:
    """Counters, wait latencies and queue depth samples shared by all units of a session."""
    counters: Dict[str, int] = field(default_factory=dict)
    wait_ms: List[float] = field(default_factory=list)
    queue_depth_samples: List[dict] = field(default_factory=list)
    started_ts: float = field(default_factory=time.time)
    finished_ts: float | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc(self, key: str, n: int = 1) -> None:
        with self._lock:
            self.counters[key] = self.counters.get(key, 0) + n

    def observe_wait_ms(self, ms: float) -> None:
        with self._lock:
            self.wait_ms.append(ms)

    def sample_queue_depth(self, depths: dict) -> None:
        depths = dict(depths)
        depths["_ts"] = time.time()
        with self._lock:
            self.queue_depth_samples.append(depths)

    def finalize(self) -> None:
        self.finished_ts = time.time()

    def summary(self) -> dict:
        dur = (self.finished_ts or time.time()) - self.started_ts
        with self._lock:
            waits = sorted(self.wait_ms)
            counters = dict(self.counters)
            samples = list(self.queue_depth_samples)

        def pct(p: float) -> float | None:
            if not waits:
                return None
            idx = int(round((p/100) * (len(waits)-1)))
            return waits[idx]

        return {
            "duration_s": dur,
            "counters": counters,
            "wait_ms": {
                "count": len(waits),
                "p50": pct(50),
                "p95": pct(95),
                "max": (waits[-1] if waits else None),
                "mean": (statistics.mean(waits) if waits else None),
            },
            "queue_depth_samples": samples,
        }
