from __future__ import annotations

from typing import Iterable

from ..schema import PROVIDERS, SOURCE_ALIASES, SYNC_ALLOWED_SOURCES


def _expand(token: str, allowed: set[str], aliases: dict[str, list[str]]) -> Iterable[str]:
    if token == "all":
        return [p for p in PROVIDERS if p in allowed] + sorted(allowed - set(PROVIDERS))
    if token in aliases:
        unknown = [p for p in aliases[token] if p not in allowed]
        if unknown:
            raise SystemExit(f"Alias '{token}' names unsupported provider(s): {', '.join(unknown)}")
        return aliases[token]
    if token in allowed:
        return [token]
    choices = ", ".join(["all", *sorted(allowed), *sorted(aliases)])
    raise SystemExit(f"Unknown provider: {token}. Choose from: {choices}")


def parse_sources(
    raw: str,
    *,
    allowed: set[str] = SYNC_ALLOWED_SOURCES,
    aliases: dict[str, list[str]] | None = None,
) -> list[str]:
    """
    Turn a --source value ("all", "consoles", "steam,xbox", ...) into provider ids.

    Aliases expand in place; duplicates keep their first position.
    """
    tokens = [t.strip().lower() for t in str(raw or "").split(",") if t.strip()]
    if not tokens:
        raise SystemExit("Missing --source value")

    alias_map = SOURCE_ALIASES if aliases is None else aliases
    out: list[str] = []
    for token in tokens:
        for provider in _expand(token, set(allowed), alias_map):
            if provider not in out:
                out.append(provider)
    return out
