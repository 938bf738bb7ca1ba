from __future__ import annotations


def test_has_progress_requires_one_earned():
    from achievement_cache_builder.models import EarnedRecord, TitleRef
    from achievement_cache_builder.pipelines.policies import HasProgressPolicy

    policy = HasProgressPolicy()
    title = TitleRef(title_id="NPWR1", name="Astro Bot")

    assert policy.prefilter(title)
    assert not policy.include(title, [])
    assert not policy.include(title, [EarnedRecord(key="1", earned=False)])
    assert policy.include(
        title, [EarnedRecord(key="1", earned=False), EarnedRecord(key="2", earned=True)]
    )


def test_has_playtime_prefilters_unplayed_titles():
    from achievement_cache_builder.models import TitleRef
    from achievement_cache_builder.pipelines.policies import HasPlaytimePolicy

    policy = HasPlaytimePolicy()
    assert policy.prefilter(TitleRef(title_id="1", name="Played", playtime_minutes=3))
    assert not policy.prefilter(TitleRef(title_id="2", name="Unplayed", playtime_minutes=0))
    assert not policy.prefilter(TitleRef(title_id="3", name="Unknown"))
    # Achievements do not matter once the title was played.
    assert policy.include(TitleRef(title_id="1", name="Played", playtime_minutes=3), [])


def test_device_exclusion_only_drops_single_excluded_device():
    from achievement_cache_builder.models import TitleRef
    from achievement_cache_builder.pipelines.policies import DeviceExclusionPolicy

    policy = DeviceExclusionPolicy()
    assert not policy.prefilter(TitleRef(title_id="1", name="PC only", devices=("Win32",)))
    assert policy.prefilter(TitleRef(title_id="2", name="Both", devices=("XboxSeries", "Win32")))
    assert policy.prefilter(TitleRef(title_id="3", name="Console", devices=("XboxOne",)))
    assert policy.prefilter(TitleRef(title_id="4", name="Unknown"))


def test_base_policy_accepts_everything():
    from achievement_cache_builder.models import TitleRef
    from achievement_cache_builder.pipelines.policies import InclusionPolicy

    policy = InclusionPolicy()
    title = TitleRef(title_id="1", name="Any")
    assert policy.prefilter(title)
    assert policy.include(title, [])
