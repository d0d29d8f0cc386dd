"""
Performance timings for request handlers and catalog operations.
"""
import threading
from collections import deque
from typing import Deque, Dict, Optional

WINDOW_SIZE = 100


class PerformanceMonitor:
    """Keeps the most recent durations (ms) per label"""

    def __init__(self, window_size: int = WINDOW_SIZE):
        self.window_size = window_size
        self._metrics: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def record(self, label: str, duration_ms: float) -> None:
        with self._lock:
            values = self._metrics.setdefault(label, deque(maxlen=self.window_size))
            values.append(duration_ms)

    def get_stats(self, label: str) -> Optional[Dict[str, float]]:
        """count / average / min / max / p95 for a label, or None if never recorded"""
        with self._lock:
            values = sorted(self._metrics.get(label, ()))
        if not values:
            return None

        count = len(values)
        p95_index = min(int(count * 0.95), count - 1)
        return {
            "count": count,
            "average": round(sum(values) / count, 2),
            "min": round(values[0], 2),
            "max": round(values[-1], 2),
            "p95": round(values[p95_index], 2),
        }

    def get_all_stats(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            labels = list(self._metrics)
        all_stats = {}
        for label in labels:
            stats = self.get_stats(label)
            if stats is not None:
                all_stats[label] = stats
        return all_stats
