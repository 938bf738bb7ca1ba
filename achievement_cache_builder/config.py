from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    retries: int = 3
    base_sleep_s: float = 1.0
    jitter_s: float = 0.3
    http_429_default_retry_after_s: float = 5.0


@dataclass(frozen=True)
class RequestConfig:
    timeout_s: int = 10


@dataclass(frozen=True)
class CacheConfig:
    # Log cache writes that take longer than this threshold (milliseconds).
    slow_save_log_ms: int = 2000


@dataclass(frozen=True)
class SteamConfig:
    min_interval_s: float = 0.5
    max_parallel_titles: int = 1


@dataclass(frozen=True)
class PSNConfig:
    min_interval_s: float = 0.3
    titles_page_size: int = 200
    max_parallel_titles: int = 1
    # Refresh slightly before the token actually expires.
    expiry_margin_s: float = 30.0


@dataclass(frozen=True)
class XboxConfig:
    min_interval_s: float = 0.2
    # OpenXBL allows bursts; keep the per-title fan-out bounded.
    max_parallel_titles: int = 4
    excluded_devices: tuple[str, ...] = ("Win32",)


@dataclass(frozen=True)
class CLIConfig:
    progress_every_n: int = 25
    progress_min_interval_s: float = 30.0


RETRY = RetryConfig()
REQUEST = RequestConfig()
CACHE = CacheConfig()
STEAM = SteamConfig()
PSN = PSNConfig()
XBOX = XboxConfig()
CLI = CLIConfig()
