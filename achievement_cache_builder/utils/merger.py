from __future__ import annotations

from typing import Iterable

from ..models import AchievementDefinition, AchievementView, EarnedRecord, GameRecord, TitleRef


def _earned_by_key(earned: Iterable[object]) -> dict[str, EarnedRecord]:
    lookup: dict[str, EarnedRecord] = {}
    for rec in earned:
        if not isinstance(rec, EarnedRecord):
            continue
        key = str(rec.key or "")
        if not key:
            continue
        # Last write wins on duplicate keys.
        lookup[key] = rec
    return lookup


def merge_achievements(
    catalog: Iterable[AchievementDefinition], earned: Iterable[object]
) -> list[AchievementView]:
    """
    Annotate every catalog entry with the player's earned status.

    This is a left join on the achievement key:
    - output order and length are exactly the catalog's;
    - earned records only annotate, keys missing from the catalog never produce entries;
    - a catalog key without an earned record is locked (`earned=False`, no timestamp);
    - a matched record passes its timestamp through unchanged, whatever its earned flag.

    Malformed earned entries are ignored rather than failing the merge.
    """
    lookup = _earned_by_key(earned)
    out: list[AchievementView] = []
    for definition in catalog:
        rec = lookup.get(definition.key)
        is_earned = bool(rec.earned) if rec is not None else False
        out.append(
            AchievementView(
                key=definition.key,
                name=definition.name,
                description=definition.description,
                icon_url=definition.icon_url,
                icon_url_unlocked=definition.icon_url_unlocked,
                earned=is_earned,
                earned_at=rec.earned_at if rec is not None else None,
            )
        )
    return out


def orphaned_keys(
    catalog: Iterable[AchievementDefinition], earned: Iterable[object]
) -> list[str]:
    """
    Earned keys that reference no catalog entry, in first-seen order.

    The merge drops these; callers surface them as a data-integrity warning.
    """
    known = {d.key for d in catalog}
    out: list[str] = []
    seen: set[str] = set()
    for rec in earned:
        if not isinstance(rec, EarnedRecord) or not rec.earned:
            continue
        key = str(rec.key or "")
        if not key or key in known or key in seen:
            continue
        seen.add(key)
        out.append(key)
    return out


def completion(views: Iterable[AchievementView]) -> tuple[int, int]:
    """Return (earned_count, total_count)."""
    earned = 0
    total = 0
    for v in views:
        total += 1
        if v.earned:
            earned += 1
    return earned, total


def build_game_record(
    title: TitleRef,
    catalog: list[AchievementDefinition],
    earned: list[EarnedRecord],
) -> GameRecord:
    return GameRecord(
        game_name=title.name,
        image_url=title.image_url,
        achievements=merge_achievements(catalog, earned),
        title_id=title.title_id,
    )
