from __future__ import annotations

import pytest


def test_credentials_yaml_with_environment_override(tmp_path):
    from achievement_cache_builder.utils.utilities import load_credentials

    p = tmp_path / "credentials.yaml"
    p.write_text(
        "steam:\n  api_key: yaml-key\n  steam_id: 7656\npsn:\n  npsso: yaml-npsso\n",
        encoding="utf-8",
    )

    creds = load_credentials(p, environ={"STEAM_API_KEY": "env-key", "XBOX_xuid": "2533"})

    assert creds["steam"] == {"api_key": "env-key", "steam_id": "7656"}
    assert creds["psn"]["npsso"] == "yaml-npsso"
    assert creds["xbox"] == {"xuid": "2533"}


def test_credentials_missing_file_uses_environment_only(tmp_path):
    from achievement_cache_builder.utils.utilities import load_credentials

    creds = load_credentials(tmp_path / "absent.yaml", environ={"PSN_NPSSO": "tok"})
    assert creds == {"psn": {"npsso": "tok"}}


def test_credentials_file_must_be_mapping(tmp_path):
    from achievement_cache_builder.utils.utilities import load_credentials

    p = tmp_path / "credentials.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_credentials(p, environ={})


def test_providers_without_credentials_are_skipped(caplog):
    from achievement_cache_builder.clients import SteamClient, XboxClient
    from achievement_cache_builder.pipelines.provider_clients import build_provider_adapters

    adapters = build_provider_adapters(
        sources=["xbox", "psn", "steam"],
        credentials={
            "steam": {"api_key": "k", "steam_id": "1"},
            "xbox": {"api_key": "k", "xuid": "2"},
            "psn": {"npsso": ""},
        },
    )

    assert list(adapters) == ["xbox", "steam"]
    assert isinstance(adapters["steam"], SteamClient)
    assert isinstance(adapters["xbox"], XboxClient)
    assert adapters["xbox"].max_workers == 4
    assert adapters["steam"].max_workers == 1
    assert any("[PSN] Missing credentials" in r.getMessage() for r in caplog.records)
