from __future__ import annotations

import json
import logging
import os
import random
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import yaml

from ..config import RETRY

# ----------------------------
# Paths / Folder structure
# ----------------------------


@dataclass(frozen=True)
class ProjectPaths:
    root: Path
    data_cache: Path
    data_output: Path
    data_logs: Path

    @staticmethod
    def from_root(root: str | Path) -> ProjectPaths:
        rootp = Path(root).resolve()
        return ProjectPaths(
            root=rootp,
            data_cache=rootp / "data" / "cache",
            data_output=rootp / "data" / "output",
            data_logs=rootp / "data" / "logs",
        )

    def ensure(self) -> None:
        self.data_cache.mkdir(parents=True, exist_ok=True)
        self.data_output.mkdir(parents=True, exist_ok=True)
        self.data_logs.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RunPaths:
    run_dir: Path
    cache_dir: Path
    output_dir: Path
    logs_dir: Path

    @staticmethod
    def from_run_dir(run_dir: str | Path) -> RunPaths:
        rd = Path(run_dir).resolve()
        return RunPaths(
            run_dir=rd,
            cache_dir=rd / "cache",
            output_dir=rd / "output",
            logs_dir=rd / "logs",
        )

    def ensure(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)


# ----------------------------
# CSV Helpers
# ----------------------------


def read_csv(path: str | Path) -> pd.DataFrame:
    """Read CSV preserving strings and avoiding problematic type inference."""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


# ----------------------------
# Timestamps
# ----------------------------


def iso_from_epoch_seconds(value: object) -> str | None:
    """
    Convert a unix epoch timestamp (seconds) into an ISO-8601 UTC string.

    Non-positive and non-numeric values mean "no timestamp" and return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        s = value.strip()
        if not s.isdigit():
            return None
        value = int(s)
    if not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    try:
        dt = datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# ----------------------------
# JSON files
# ----------------------------


def load_json_file(path: str | Path) -> Any:
    """
    Load a JSON document, returning None when the file does not exist.

    Decoding errors propagate; callers decide whether a corrupt file is fatal.
    """
    p = Path(path)
    if not p.exists():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def save_json_atomic(data: Any, path: str | Path) -> None:
    """
    Write JSON via a temp file in the target directory, then replace the target.

    A failure at any point leaves the previous file untouched.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, ensure_ascii=False, indent=2)
    fd, tmp_path = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, p)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# ----------------------------
# Rate limiting + retries
# ----------------------------


class RateLimiter:
    """
    Simple rate limiter: enforces minimum interval between requests.

    Safe to share between worker threads.
    """

    def __init__(self, min_interval_s: float = 1.0):
        self.min_interval_s = float(min_interval_s)
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            # Use monotonic time to avoid issues if the system clock changes.
            now = time.monotonic()
            delta = now - self._last
            if delta < self.min_interval_s:
                time.sleep(self.min_interval_s - delta)
            self._last = time.monotonic()


def with_retries(
    fn: Callable[[], Any],
    *,
    retries: int = RETRY.retries,
    base_sleep_s: float = RETRY.base_sleep_s,
    jitter_s: float = RETRY.jitter_s,
    retry_on: tuple[type, ...] = (Exception,),
    on_fail_return: Any = None,
    context: str | None = None,
    retry_stats: dict[str, Any] | None = None,
) -> Any:
    """
    Execute fn with retries and exponential backoff.
    """
    import requests

    net_types = (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.SSLError,
    )
    for attempt in range(retries):
        try:
            return fn()
        except retry_on as e:
            retry_after_s: float | None = None
            is_429 = False
            is_client_error = False
            is_network = isinstance(e, net_types)
            is_http = isinstance(e, requests.exceptions.HTTPError)
            if is_http:
                resp = getattr(e, "response", None)
                status = getattr(resp, "status_code", None)
                # A 4xx answer other than 429 will not change on retry.
                is_client_error = isinstance(status, int) and 400 <= status < 500 and status != 429
                if status == 429:
                    is_429 = True
                    headers = getattr(resp, "headers", {}) or {}
                    try:
                        ra = str(headers.get("Retry-After", "") or "").strip()
                        if ra:
                            retry_after_s = float(ra)
                    except ValueError:
                        retry_after_s = None
                    if retry_after_s is None:
                        retry_after_s = RETRY.http_429_default_retry_after_s

            if retry_stats is not None:
                if is_429:
                    retry_stats["http_429"] = int(retry_stats.get("http_429", 0)) + 1
                if is_network:
                    retry_stats["network_errors"] = int(retry_stats.get("network_errors", 0)) + 1
                if is_http:
                    retry_stats["http_errors"] = int(retry_stats.get("http_errors", 0)) + 1

            if attempt == retries - 1 or is_client_error:
                if context:
                    # Keep network-offline situations distinct from provider "no data" cases.
                    if is_network:
                        logging.error(f"[NETWORK] {context}: {type(e).__name__}: {e}")
                    elif is_http:
                        logging.error(f"[HTTP] {context}: {type(e).__name__}: {e}")
                    else:
                        logging.error(f"[REQUEST] {context}: {type(e).__name__}: {e}")
                if retry_stats is not None:
                    if is_network:
                        retry_stats["network_failures"] = int(
                            retry_stats.get("network_failures", 0)
                        ) + 1
                    if is_http:
                        retry_stats["http_failures"] = int(retry_stats.get("http_failures", 0)) + 1
                return on_fail_return
            sleep = base_sleep_s * (2**attempt) + random.uniform(0, jitter_s)
            if retry_after_s is not None and retry_after_s > 0:
                sleep = max(sleep, retry_after_s)
            if retry_stats is not None:
                retry_stats["retry_attempts"] = int(retry_stats.get("retry_attempts", 0)) + 1
                if is_429:
                    retry_stats["http_429_retries"] = int(retry_stats.get("http_429_retries", 0)) + 1
            time.sleep(sleep)
    return on_fail_return


# ----------------------------
# Credentials loading
# ----------------------------

# Environment variables take precedence over credentials.yaml entries.
CREDENTIAL_ENV_VARS: dict[str, dict[str, tuple[str, ...]]] = {
    "steam": {"api_key": ("STEAM_API_KEY",), "steam_id": ("STEAM_ID",)},
    "psn": {"npsso": ("PSN_NPSSO",)},
    "xbox": {"api_key": ("XBOX_API_KEY",), "xuid": ("XBOX_XUID", "XBOX_xuid")},
}


def load_credentials(
    credentials_path: str | Path | None = None,
    *,
    environ: dict[str, str] | None = None,
) -> dict[str, dict[str, str]]:
    """
    Load provider credentials from a YAML file and the process environment.

    Args:
        credentials_path: Path to credentials.yaml. Missing files are fine when the environment
                          provides the values.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Dictionary keyed by provider (e.g., {'steam': {'api_key': ..., 'steam_id': ...}})
    """
    out: dict[str, dict[str, str]] = {}
    if credentials_path is not None:
        p = Path(credentials_path)
        if p.exists():
            with open(p, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"Credentials file must contain a mapping: {p}")
            for provider, values in raw.items():
                if isinstance(values, dict):
                    out[str(provider)] = {
                        str(k): str(v).strip() for k, v in values.items() if v is not None
                    }

    env = os.environ if environ is None else environ
    for provider, fields in CREDENTIAL_ENV_VARS.items():
        for field_name, names in fields.items():
            for name in names:
                val = str(env.get(name, "") or "").strip()
                if val:
                    out.setdefault(provider, {})[field_name] = val
                    break
    return out
