from __future__ import annotations

import logging
import time
from json import JSONDecodeError
from pathlib import Path
from typing import Sequence

from ..config import CACHE
from ..errors import CacheWriteError
from ..models import GameRecord
from ..schema import cache_file_name
from ..utils.utilities import load_json_file, save_json_atomic


class ProviderCacheStore:
    """
    One pretty-printed JSON artifact per provider holding the full list of game records.

    - `write` replaces the whole artifact (temp file + rename), so an interrupted write leaves
      the previous cache readable.
    - `read` returns None when there is no usable cache.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, provider: str) -> Path:
        return self.cache_dir / cache_file_name(provider)

    def write(self, provider: str, records: Sequence[GameRecord]) -> Path:
        path = self.path_for(provider)
        t0 = time.perf_counter()
        try:
            save_json_atomic([r.to_dict() for r in records], path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheWriteError(f"Failed to write {provider} cache '{path}': {e}") from e
        dur_ms = int(round((time.perf_counter() - t0) * 1000.0))
        if CACHE.slow_save_log_ms > 0 and dur_ms >= CACHE.slow_save_log_ms:
            logging.info(f"[CACHE] Wrote '{path.name}' in {dur_ms}ms")
        return path

    def read(self, provider: str) -> list[GameRecord] | None:
        path = self.path_for(provider)
        try:
            raw = load_json_file(path)
        except (OSError, JSONDecodeError, UnicodeDecodeError) as e:
            logging.warning(f"[CACHE] Ignoring unreadable cache '{path}': {e}")
            return None
        if raw is None:
            return None
        if not isinstance(raw, list):
            logging.warning(
                f"[CACHE] Cache file '{path}' is in an incompatible format; ignoring it "
                "(it will be rebuilt on the next sync)."
            )
            return None
        try:
            return [GameRecord.from_dict(r) for r in raw]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.warning(f"[CACHE] Ignoring malformed cache '{path}': {e}")
            return None
