from __future__ import annotations


def _catalog(*keys: str):
    from achievement_cache_builder.models import AchievementDefinition

    return [
        AchievementDefinition(key=k, name=f"Name {k}", description=f"Do {k}", icon_url=f"{k}.png")
        for k in keys
    ]


def test_merge_is_left_join_in_catalog_order():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    catalog = _catalog("c", "a", "b")
    earned = [
        EarnedRecord(key="b", earned=True, earned_at="2023-01-02T00:00:00Z"),
        EarnedRecord(key="c", earned=False),
    ]

    views = merge_achievements(catalog, earned)

    assert [v.key for v in views] == ["c", "a", "b"]
    assert [v.earned for v in views] == [False, False, True]
    assert views[2].earned_at == "2023-01-02T00:00:00Z"
    assert views[1].earned_at is None
    assert views[0].name == "Name c"
    assert views[0].icon_url == "c.png"


def test_merge_drops_keys_missing_from_catalog():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements, orphaned_keys

    catalog = _catalog("a")
    earned = [
        EarnedRecord(key="a", earned=True, earned_at="t1"),
        EarnedRecord(key="ghost", earned=True, earned_at="t2"),
        EarnedRecord(key="ghost", earned=True, earned_at="t3"),
        EarnedRecord(key="locked-ghost", earned=False),
    ]

    views = merge_achievements(catalog, earned)
    assert [v.key for v in views] == ["a"]
    assert orphaned_keys(catalog, earned) == ["ghost"]


def test_merge_duplicate_earned_keys_last_write_wins():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    views = merge_achievements(
        _catalog("a"),
        [EarnedRecord(key="a", earned=True, earned_at="t1"), EarnedRecord(key="a", earned=False)],
    )
    assert views[0].earned is False
    assert views[0].earned_at is None


def test_merge_empty_catalog_and_empty_progress():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    assert merge_achievements([], [EarnedRecord(key="a", earned=True)]) == []
    views = merge_achievements(_catalog("a", "b"), [])
    assert [v.earned for v in views] == [False, False]


def test_merge_ignores_malformed_earned_entries():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    views = merge_achievements(
        _catalog("a", "b"),
        [None, {"key": "a", "earned": True}, EarnedRecord(key="", earned=True), "b"],
    )
    assert [v.earned for v in views] == [False, False]


def test_merge_passes_timestamp_through_for_unearned_record():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    views = merge_achievements(_catalog("a"), [EarnedRecord(key="a", earned=False, earned_at="t")])
    assert views[0].earned is False
    assert views[0].earned_at == "t"


def test_merge_is_idempotent():
    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    catalog = _catalog("a", "b")
    earned = [EarnedRecord(key="a", earned=True, earned_at="t")]
    assert merge_achievements(catalog, earned) == merge_achievements(catalog, earned)


def test_build_game_record_and_completion():
    from achievement_cache_builder.models import EarnedRecord, TitleRef
    from achievement_cache_builder.utils.merger import build_game_record, completion

    title = TitleRef(title_id="42", name="Portal", image_url="http://img/42.jpg")
    rec = build_game_record(title, _catalog("a", "b", "c"), [EarnedRecord(key="c", earned=True)])

    assert rec.game_name == "Portal"
    assert rec.title_id == "42"
    assert rec.image_url == "http://img/42.jpg"
    assert completion(rec.achievements) == (1, 3)
    assert (rec.earned_count, rec.total_count) == (1, 3)


def test_merge_reference_example_and_stable_serialization():
    import json

    from achievement_cache_builder.models import EarnedRecord
    from achievement_cache_builder.utils.merger import merge_achievements

    catalog = _catalog("A", "B", "C")
    earned = [
        EarnedRecord(key="A", earned=False),
        EarnedRecord(key="A", earned=True, earned_at="5"),
        EarnedRecord(key="B", earned=True, earned_at="1000"),
    ]

    views = merge_achievements(catalog, earned)
    assert [(v.key, v.earned, v.earned_at) for v in views] == [
        ("A", True, "5"),
        ("B", True, "1000"),
        ("C", False, None),
    ]

    first = json.dumps([v.to_dict() for v in views])
    second = json.dumps([v.to_dict() for v in merge_achievements(catalog, list(earned))])
    assert first == second
