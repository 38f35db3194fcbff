# src/krakenfeed/metrics.py
from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Sequence
import threading
import time

# upper bounds in seconds; the last implicit bucket is +Inf
DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


@dataclass
class OperationStats:
    calls: int = 0
    errors: int = 0
    total_s: float = 0.0
    max_s: float = 0.0
    # bucket upper bound -> observations <= bound (not cumulative)
    buckets: Dict[float, int] = field(default_factory=dict)
    overflow: int = 0

    @property
    def mean_s(self) -> float:
        observed = sum(self.buckets.values()) + self.overflow
        return self.total_s / observed if observed else 0.0


class MetricsRegistry:
    """Call counts, error counts and duration histograms per operation.

    Constructed by the caller and handed to whatever records into it
    (see InstrumentedClient); safe to share between threads.
    """

    def __init__(self, buckets: Sequence[float] = DEFAULT_BUCKETS):
        if list(buckets) != sorted(buckets):
            raise ValueError(f"buckets must be ascending: {buckets}")
        self._bounds = tuple(float(b) for b in buckets)
        self._lock = threading.Lock()
        self._ops: Dict[str, OperationStats] = {}

    def _stats(self, op: str) -> OperationStats:
        # caller holds the lock
        st = self._ops.get(op)
        if st is None:
            st = OperationStats(buckets={b: 0 for b in self._bounds})
            self._ops[op] = st
        return st

    def inc_calls(self, op: str) -> None:
        with self._lock:
            self._stats(op).calls += 1

    def inc_errors(self, op: str) -> None:
        with self._lock:
            self._stats(op).errors += 1

    def observe(self, op: str, seconds: float) -> None:
        with self._lock:
            st = self._stats(op)
            st.total_s += seconds
            st.max_s = max(st.max_s, seconds)
            for bound in self._bounds:
                if seconds <= bound:
                    st.buckets[bound] += 1
                    break
            else:
                st.overflow += 1

    @contextmanager
    def track(self, op: str) -> Iterator[None]:
        """Count a call to `op`, time it, and count it as an error if it raises."""
        self.inc_calls(op)
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.inc_errors(op)
            raise
        finally:
            self.observe(op, time.perf_counter() - start)

    def snapshot(self) -> Dict[str, OperationStats]:
        with self._lock:
            return {
                op: replace(st, buckets=dict(st.buckets)) for op, st in self._ops.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._ops.clear()
