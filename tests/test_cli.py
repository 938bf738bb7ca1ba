from __future__ import annotations

import json
import logging

import pytest


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


class _OneGameAdapter:
    provider = "xbox"
    max_workers = 1

    def __init__(self):
        from achievement_cache_builder.pipelines.policies import InclusionPolicy

        self.inclusion_policy = InclusionPolicy()

    def obtain_session(self):
        from achievement_cache_builder.models import Session

        return Session(provider="xbox", access_token="k")

    def refresh_if_expired(self, session):
        return session

    def list_titles(self, session):
        from achievement_cache_builder.models import TitleRef

        return [TitleRef(title_id="9", name="Gears", image_url="http://img/g.png")]

    def fetch_catalog(self, session, title):
        from achievement_cache_builder.models import AchievementDefinition

        return [AchievementDefinition(key="a", name="A", description="", icon_url="")]

    def fetch_progress(self, session, title):
        from achievement_cache_builder.models import EarnedRecord

        return [EarnedRecord(key="a", earned=True, earned_at="2020-01-01T00:00:00Z")]

    def format_stats(self):
        return ""


def test_cli_sync_dumps_and_summary_writes_csv(tmp_path, monkeypatch, capsys, restore_logging):
    from achievement_cache_builder import cli
    from achievement_cache_builder.pipelines.context import PipelineContext
    from achievement_cache_builder.utils import read_csv

    monkeypatch.setattr(
        PipelineContext, "build_adapters", lambda self: {"xbox": _OneGameAdapter()}
    )
    run_dir = tmp_path / "run"

    cli.main(["sync", "--run-dir", str(run_dir), "--source", "xbox"])
    dumped = json.loads(capsys.readouterr().out)
    assert dumped["xbox"][0]["gameName"] == "Gears"
    assert dumped["xbox"][0]["achievements"][0]["earnedAt"] == "2020-01-01T00:00:00Z"
    assert (run_dir / "cache" / "xbox_cache.json").exists()

    out_csv = tmp_path / "summary.csv"
    cli.main(["summary", "--run-dir", str(run_dir), "--source", "xbox", "--out", str(out_csv)])
    df = read_csv(out_csv)
    assert df.to_dict("records") == [
        {
            "Provider": "xbox",
            "TitleId": "9",
            "Game": "Gears",
            "Earned": "1",
            "Total": "1",
            "CompletionPercent": "100.0",
        }
    ]


def test_cli_sync_exits_nonzero_when_cache_write_fails(tmp_path, monkeypatch, restore_logging):
    from achievement_cache_builder import cli
    from achievement_cache_builder.pipelines.context import PipelineContext

    monkeypatch.setattr(
        PipelineContext, "build_adapters", lambda self: {"xbox": _OneGameAdapter()}
    )

    def broken_replace(src, dst):
        raise OSError("read-only")

    monkeypatch.setattr("os.replace", broken_replace)

    with pytest.raises(SystemExit) as exc:
        cli.main(["sync", "--run-dir", str(tmp_path / "run"), "--no-dump"])
    assert exc.value.code == 1


def test_cli_sync_continues_after_title_list_failure(
    tmp_path, monkeypatch, capsys, restore_logging
):
    from achievement_cache_builder import cli
    from achievement_cache_builder.errors import TitleFetchError
    from achievement_cache_builder.pipelines.context import PipelineContext

    class _NoTitlesAdapter(_OneGameAdapter):
        provider = "steam"

        def list_titles(self, session):
            raise TitleFetchError("owned games unavailable")

    monkeypatch.setattr(
        PipelineContext,
        "build_adapters",
        lambda self: {"steam": _NoTitlesAdapter(), "xbox": _OneGameAdapter()},
    )
    run_dir = tmp_path / "run"

    with pytest.raises(SystemExit) as exc:
        cli.main(["sync", "--run-dir", str(run_dir)])
    assert exc.value.code == 1

    dumped = json.loads(capsys.readouterr().out)
    assert list(dumped) == ["xbox"]
    assert dumped["xbox"][0]["gameName"] == "Gears"
    assert (run_dir / "cache" / "xbox_cache.json").exists()
    assert not (run_dir / "cache" / "steam_cache.json").exists()
