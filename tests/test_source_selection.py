from __future__ import annotations

import pytest


def _parse(raw):
    from achievement_cache_builder.schema import SOURCE_ALIASES, SYNC_ALLOWED_SOURCES
    from achievement_cache_builder.utils.source_selection import parse_sources

    return parse_sources(raw, allowed=set(SYNC_ALLOWED_SOURCES), aliases=SOURCE_ALIASES)


def test_parse_sources_all_and_lists():
    assert _parse("all") == ["psn", "steam", "xbox"]
    assert _parse("xbox, steam,xbox") == ["xbox", "steam"]
    assert _parse("consoles,steam") == ["psn", "xbox", "steam"]


def test_parse_sources_rejects_unknown():
    with pytest.raises(SystemExit):
        _parse("gog")
    with pytest.raises(SystemExit):
        _parse("")
