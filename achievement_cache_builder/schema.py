from __future__ import annotations

# -----------------------------------------------------------------------------
# Provider selection / cache artifacts
# -----------------------------------------------------------------------------

# Canonical provider ids. These are also the cache file stems (`<provider>_cache.json`).
PROVIDERS = ("psn", "steam", "xbox")

PROVIDER_LABELS: dict[str, str] = {
    "psn": "[PSN]",
    "steam": "[STEAM]",
    "xbox": "[XBOX]",
}

# CLI/provider selection
SOURCE_ALIASES: dict[str, list[str]] = {
    "playstation": ["psn"],
    "consoles": ["psn", "xbox"],
}
SYNC_ALLOWED_SOURCES = set(PROVIDERS)

# Columns of the completion summary table.
SUMMARY_COLUMNS = ("Provider", "TitleId", "Game", "Earned", "Total", "CompletionPercent")


def cache_file_name(provider: str) -> str:
    return f"{provider}_cache.json"
