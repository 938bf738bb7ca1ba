from __future__ import annotations

import logging
import threading
import time

from ..config import CLI


class TitleProgress:
    """
    Throttled "N/total titles" log lines for a provider run.

    A line is emitted at most every `CLI.progress_min_interval_s` seconds (or every
    `CLI.progress_every_n` titles when the interval is disabled), plus once at completion.
    `advance` may be called from worker threads.
    """

    def __init__(
        self,
        label: str,
        total: int,
        *,
        every_n: int = CLI.progress_every_n,
        min_interval_s: float = CLI.progress_min_interval_s,
    ) -> None:
        self.label = label
        self.total = max(0, int(total))
        self.every_n = int(every_n)
        self.min_interval_s = float(min_interval_s or 0.0)
        self.done = 0
        self._started = time.monotonic()
        self._last_log = self._started
        self._lock = threading.Lock()

    def _due(self, now: float) -> bool:
        if self.total and self.done >= self.total:
            return True
        if self.min_interval_s > 0:
            return (now - self._last_log) >= self.min_interval_s
        return self.every_n > 0 and self.done % self.every_n == 0

    def advance(self) -> None:
        with self._lock:
            self.done += 1
            now = time.monotonic()
            if not self._due(now):
                return
            self._last_log = now
            done, elapsed = self.done, now - self._started
        logging.info(f"{self.label} Progress {done}/{self.total} titles ({elapsed:.1f}s)")
