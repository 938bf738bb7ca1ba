from __future__ import annotations

import logging

from ..clients import PSNClient, SteamClient, XboxClient
from ..config import PSN, STEAM, XBOX
from ..schema import PROVIDER_LABELS


def _cred(credentials: dict[str, object], provider: str, key: str) -> str:
    return str((credentials.get(provider, {}) or {}).get(key, "") or "").strip()


def build_provider_adapters(
    *, sources: list[str], credentials: dict[str, object]
) -> dict[str, object]:
    """
    Instantiate provider adapters for the selected sources.

    Providers with missing credentials are skipped with a warning; the returned mapping keeps
    the order of `sources`.
    """
    adapters: dict[str, object] = {}

    for provider in sources:
        label = PROVIDER_LABELS.get(provider, f"[{provider.upper()}]")
        if provider == "steam":
            api_key = _cred(credentials, "steam", "api_key")
            steam_id = _cred(credentials, "steam", "steam_id")
            if api_key and steam_id:
                adapters["steam"] = SteamClient(
                    api_key=api_key,
                    steam_id=steam_id,
                    min_interval_s=STEAM.min_interval_s,
                    max_workers=STEAM.max_parallel_titles,
                )
                continue
        elif provider == "psn":
            npsso = _cred(credentials, "psn", "npsso")
            if npsso:
                adapters["psn"] = PSNClient(
                    npsso=npsso,
                    min_interval_s=PSN.min_interval_s,
                    max_workers=PSN.max_parallel_titles,
                )
                continue
        elif provider == "xbox":
            api_key = _cred(credentials, "xbox", "api_key")
            xuid = _cred(credentials, "xbox", "xuid")
            if api_key and xuid:
                adapters["xbox"] = XboxClient(
                    api_key=api_key,
                    xuid=xuid,
                    min_interval_s=XBOX.min_interval_s,
                    max_workers=XBOX.max_parallel_titles,
                )
                continue
        else:
            logging.warning(f"Unknown provider '{provider}'; skipping")
            continue
        logging.warning(f"{label} Missing credentials; skipping provider")

    return adapters
