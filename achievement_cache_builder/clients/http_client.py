from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from ..config import REQUEST, RETRY
from ..utils.utilities import RateLimiter, with_retries


@dataclass
class ProviderHTTPClient:
    """
    One provider's JSON-over-HTTP transport: a `requests.Session`, a rate limiter, the retry
    policy and per-endpoint counters.

    `stats[<endpoint>]` counts attempts (retries included) and `stats[<endpoint>_ms]` the time
    spent waiting on responses. Title workers share one instance.

    `status_handlers` maps HTTP status codes to sentinel return values, so "expected" statuses
    (401 on a rejected key, 400 on a title without stats) bypass retries.
    """

    label: str
    endpoints: tuple[str, ...] = ()
    ratelimiter: RateLimiter | None = None
    status_handlers: dict[int, Any] = field(default_factory=dict)
    timeout_s: float = REQUEST.timeout_s
    retries: int = RETRY.retries
    base_sleep_s: float = RETRY.base_sleep_s
    session: requests.Session = field(default_factory=requests.Session)
    stats: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        for endpoint in self.endpoints:
            self.stats.setdefault(endpoint, 0)
            self.stats.setdefault(f"{endpoint}_ms", 0)

    def count(self, endpoint: str, *, elapsed_ms: int = 0) -> None:
        with self._lock:
            self.stats[endpoint] = int(self.stats.get(endpoint, 0) or 0) + 1
            if elapsed_ms:
                ms_key = f"{endpoint}_ms"
                self.stats[ms_key] = int(self.stats.get(ms_key, 0) or 0) + int(elapsed_ms)

    def get_json(
        self,
        url: str,
        *,
        endpoint: str,
        context: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        status_handlers: dict[int, Any] | None = None,
        on_fail_return: Any = None,
    ) -> Any:
        handlers = self.status_handlers if status_handlers is None else status_handlers

        def _request() -> Any:
            if self.ratelimiter is not None:
                self.ratelimiter.wait()
            kwargs: dict[str, Any] = {"timeout": self.timeout_s}
            if params is not None:
                kwargs["params"] = params
            if headers is not None:
                kwargs["headers"] = headers
            t0 = time.perf_counter()
            try:
                r = self.session.get(url, **kwargs)
            finally:
                self.count(endpoint, elapsed_ms=int(round((time.perf_counter() - t0) * 1000.0)))
            if r.status_code in handlers:
                return handlers[r.status_code]
            r.raise_for_status()
            return r.json()

        return with_retries(
            _request,
            retries=self.retries,
            base_sleep_s=self.base_sleep_s,
            on_fail_return=on_fail_return,
            context=f"{self.label}: {context}" if context else self.label,
            retry_stats=self.stats,
        )

    def format_stats(self) -> str:
        return " ".join(
            f"{ep}={int(self.stats.get(ep, 0) or 0)} ({int(self.stats.get(f'{ep}_ms', 0) or 0)}ms)"
            for ep in self.endpoints
        )
