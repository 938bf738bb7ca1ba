from __future__ import annotations


def _record(name, tid, earned_flags):
    from achievement_cache_builder.models import AchievementView, GameRecord

    return GameRecord(
        game_name=name,
        title_id=tid,
        image_url="",
        achievements=[
            AchievementView(
                key=str(i), name="", description="", icon_url="", icon_url_unlocked=None,
                earned=flag,
            )
            for i, flag in enumerate(earned_flags)
        ],
    )


def test_completion_table_rows_and_csv(tmp_path):
    from achievement_cache_builder.utils import read_csv, write_csv
    from achievement_cache_builder.utils.summary import build_completion_table

    df = build_completion_table(
        {
            "steam": [_record("Portal 2", "620", [True, False, False])],
            "xbox": [_record("Halo", "2196", []), _record("Forza", "1", [True, True])],
        }
    )

    assert list(df.columns) == ["Provider", "TitleId", "Game", "Earned", "Total", "CompletionPercent"]
    assert df["Provider"].tolist() == ["steam", "xbox", "xbox"]
    assert df["CompletionPercent"].tolist() == [33.3, 0.0, 100.0]

    out = tmp_path / "summary.csv"
    write_csv(df, out)
    back = read_csv(out)
    assert back["Game"].tolist() == ["Portal 2", "Halo", "Forza"]
    assert back["Earned"].tolist() == ["1", "0", "2"]


def test_completion_table_empty_has_columns():
    from achievement_cache_builder.utils.summary import build_completion_table

    df = build_completion_table({})
    assert df.empty
    assert "CompletionPercent" in df.columns


def test_format_completion_line():
    from achievement_cache_builder.utils.summary import format_completion_line

    line = format_completion_line("psn", _record("Astro Bot", "NPWR1", [True, False]))
    assert "50.0%" in line
    assert line.endswith("Astro Bot")
    assert "n/a" in format_completion_line("psn", _record("Empty", "x", []))
