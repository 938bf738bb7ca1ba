"""
Utility functions and helpers.

This module intentionally uses lazy attribute loading to avoid importing heavier
submodules (e.g., pandas) unless they are needed.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ProjectPaths",
    "RunPaths",
    "RateLimiter",
    "build_completion_table",
    "build_game_record",
    "completion",
    "iso_from_epoch_seconds",
    "load_credentials",
    "load_json_file",
    "merge_achievements",
    "orphaned_keys",
    "read_csv",
    "save_json_atomic",
    "with_retries",
    "write_csv",
]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name in {
        "ProjectPaths",
        "RunPaths",
        "RateLimiter",
        "iso_from_epoch_seconds",
        "load_credentials",
        "load_json_file",
        "read_csv",
        "save_json_atomic",
        "with_retries",
        "write_csv",
    }:
        from . import utilities as _u

        return getattr(_u, name)

    if name in {"build_game_record", "completion", "merge_achievements", "orphaned_keys"}:
        from . import merger as _m

        return getattr(_m, name)

    if name == "build_completion_table":
        from .summary import build_completion_table

        return build_completion_table

    raise AttributeError(name)
