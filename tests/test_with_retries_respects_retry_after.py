from __future__ import annotations


def test_with_retries_respects_retry_after(monkeypatch):
    import requests

    from achievement_cache_builder.utils.utilities import with_retries

    class Resp:
        status_code = 429
        headers = {"Retry-After": "0.02"}

    sleeps: list[float] = []

    def fake_sleep(s: float):
        sleeps.append(float(s))

    monkeypatch.setattr("time.sleep", fake_sleep)

    calls = {"n": 0}
    stats: dict[str, int] = {}

    def fn():
        calls["n"] += 1
        if calls["n"] == 1:
            e = requests.exceptions.HTTPError("429")
            e.response = Resp()
            raise e
        return "ok"

    out = with_retries(
        fn,
        retries=2,
        base_sleep_s=0.0,
        jitter_s=0.0,
        retry_on=(requests.exceptions.HTTPError,),
        on_fail_return=None,
        context="test",
        retry_stats=stats,
    )
    assert out == "ok"
    assert len(sleeps) == 1
    assert sleeps[0] >= 0.02
    assert stats["http_429"] == 1
    assert stats["http_429_retries"] == 1


def test_with_retries_returns_sentinel_after_last_attempt(monkeypatch, caplog):
    import requests

    from achievement_cache_builder.utils.utilities import with_retries

    monkeypatch.setattr("time.sleep", lambda s: None)
    sentinel = object()
    stats: dict[str, int] = {}

    def fn():
        raise requests.exceptions.ConnectionError("offline")

    out = with_retries(
        fn, retries=3, base_sleep_s=0.0, jitter_s=0.0, on_fail_return=sentinel,
        context="Steam: GetOwnedGames", retry_stats=stats,
    )
    assert out is sentinel
    assert stats["network_errors"] == 3
    assert stats["network_failures"] == 1
    assert any("[NETWORK] Steam: GetOwnedGames" in r.getMessage() for r in caplog.records)


def test_with_retries_does_not_retry_client_errors(monkeypatch, caplog):
    import requests

    from achievement_cache_builder.utils.utilities import with_retries

    class Resp:
        status_code = 404
        headers: dict[str, str] = {}

    sleeps: list[float] = []
    monkeypatch.setattr("time.sleep", lambda s: sleeps.append(float(s)))
    calls = {"n": 0}
    stats: dict[str, int] = {}

    def fn():
        calls["n"] += 1
        e = requests.exceptions.HTTPError("404")
        e.response = Resp()
        raise e

    out = with_retries(
        fn, retries=3, base_sleep_s=1.0, jitter_s=0.0, on_fail_return="missing",
        context="Xbox: achievements", retry_stats=stats,
    )
    assert out == "missing"
    assert calls["n"] == 1
    assert sleeps == []
    assert stats["http_failures"] == 1
    assert "retry_attempts" not in stats
    assert any("[HTTP] Xbox: achievements" in r.getMessage() for r in caplog.records)
