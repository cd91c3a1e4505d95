from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime, timezone

from ..core.metrics import update_success_rate
from ..schemas.tasks import PerformanceStats

DEFAULT_WINDOW = 100


class PerformanceStatsCollector:
    """Cumulative task counters plus a rolling window of recent durations.

    Counts cover every task ever submitted; the average processing time only
    covers the most recent ``window`` completions.
    """

    def __init__(self, *, window: int = DEFAULT_WINDOW) -> None:
        self._total = 0
        self._succeeded = 0
        self._failed = 0
        self._durations: deque[float] = deque(maxlen=window)
        self._success_rate = 0.0
        self._average = 0.0
        self._lock = asyncio.Lock()

    @property
    def window(self) -> int:
        return self._durations.maxlen or DEFAULT_WINDOW

    async def record_submission(self) -> None:
        async with self._lock:
            self._total += 1
            self._recompute()

    async def record_completion(self, *, success: bool, processing_time: float) -> None:
        async with self._lock:
            if success:
                self._succeeded += 1
            else:
                self._failed += 1
            self._durations.append(max(0.0, processing_time))
            self._recompute()

    def snapshot(self) -> PerformanceStats:
        return PerformanceStats(
            total_tasks=self._total,
            successful_tasks=self._succeeded,
            failed_tasks=self._failed,
            success_rate=self._success_rate,
            average_processing_time=self._average,
            last_update=datetime.now(timezone.utc),
        )

    def _recompute(self) -> None:
        self._success_rate = self._succeeded / self._total if self._total else 0.0
        self._average = sum(self._durations) / len(self._durations) if self._durations else 0.0
        update_success_rate(successful=self._succeeded, total=self._total)
