from __future__ import annotations

import logging

from ..config import STEAM
from ..errors import AuthenticationError, NoAchievementsDefined, TitleFetchError
from ..models import AchievementDefinition, EarnedRecord, Session, TitleRef
from ..pipelines.policies import HasPlaytimePolicy, InclusionPolicy
from ..utils.utilities import RateLimiter, iso_from_epoch_seconds
from .http_client import ProviderHTTPClient
from .parse import as_flag, as_int, as_str, get_list_of_dicts, get_path, optional_str

STEAM_OWNED_GAMES_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v1/"
STEAM_SCHEMA_URL = "https://api.steampowered.com/ISteamUserStats/GetSchemaForGame/v2/"
STEAM_PLAYER_ACHIEVEMENTS_URL = (
    "https://api.steampowered.com/ISteamUserStats/GetPlayerAchievements/v1/"
)
STEAM_ICON_URL = (
    "http://media.steampowered.com/steamcommunity/public/images/apps/{appid}/{icon}.jpg"
)

_FORBIDDEN = object()
_NO_STATS = object()


class SteamClient:
    """
    Steam Web API adapter.

    Titles come from the owned-games list; a title is worth caching when it has any playtime.
    """

    provider = "steam"

    def __init__(
        self,
        api_key: str,
        steam_id: str,
        min_interval_s: float = STEAM.min_interval_s,
        inclusion_policy: InclusionPolicy | None = None,
        max_workers: int = STEAM.max_parallel_titles,
    ):
        self.api_key = api_key
        self.steam_id = steam_id
        self.inclusion_policy = inclusion_policy or HasPlaytimePolicy()
        self.max_workers = max(1, int(max_workers))
        self._http = ProviderHTTPClient(
            label="Steam",
            endpoints=("http_owned_games", "http_schema", "http_player_achievements"),
            ratelimiter=RateLimiter(min_interval_s=min_interval_s),
        )
        self.stats = self._http.stats

    # -------------------------------------------------
    # Session
    # -------------------------------------------------
    def obtain_session(self) -> Session:
        if not self.api_key or not self.steam_id:
            raise AuthenticationError("Steam: api_key and steam_id are required")
        return Session(provider=self.provider, access_token=self.api_key)

    def refresh_if_expired(self, session: Session) -> Session:
        # API keys do not expire.
        return session

    # -------------------------------------------------
    # Titles
    # -------------------------------------------------
    def list_titles(self, session: Session) -> list[TitleRef]:
        data = self._http.get_json(
            STEAM_OWNED_GAMES_URL,
            params={
                "key": session.access_token,
                "steamid": self.steam_id,
                "include_appinfo": "true",
                "include_played_free_games": "true",
                "format": "json",
            },
            status_handlers={401: _FORBIDDEN, 403: _FORBIDDEN},
            endpoint="http_owned_games",
            context="GetOwnedGames",
            on_fail_return=None,
        )
        if data is _FORBIDDEN:
            raise AuthenticationError("Steam: API key rejected (GetOwnedGames)")
        games = get_path(data, "response", "games")
        if not isinstance(games, list):
            if isinstance(get_path(data, "response"), dict):
                # A private profile answers with an empty response object.
                logging.warning("[STEAM] Owned games list is empty (is the profile private?)")
                return []
            raise TitleFetchError("Steam GetOwnedGames", "unexpected response")

        titles: list[TitleRef] = []
        for game in get_list_of_dicts(games):
            appid = as_int(game.get("appid"))
            if appid is None:
                continue
            icon = as_str(game.get("img_icon_url"))
            titles.append(
                TitleRef(
                    title_id=str(appid),
                    name=as_str(game.get("name")) or str(appid),
                    image_url=STEAM_ICON_URL.format(appid=appid, icon=icon) if icon else "",
                    playtime_minutes=as_int(game.get("playtime_forever")) or 0,
                )
            )
        return titles

    # -------------------------------------------------
    # Catalog / progress
    # -------------------------------------------------
    def fetch_catalog(self, session: Session, title: TitleRef) -> list[AchievementDefinition]:
        context = f"GetSchemaForGame appid={title.title_id}"
        data = self._http.get_json(
            STEAM_SCHEMA_URL,
            params={"key": session.access_token, "appid": title.title_id},
            status_handlers={400: _NO_STATS},
            endpoint="http_schema",
            context=context,
            on_fail_return=None,
        )
        if data is None:
            raise TitleFetchError(f"Steam {context}")
        if data is _NO_STATS:
            raise NoAchievementsDefined(f"Steam {context}")
        achievements = get_path(data, "game", "availableGameStats", "achievements")
        if not isinstance(achievements, list) or not achievements:
            raise NoAchievementsDefined(f"Steam {context}")
        return parse_schema_achievements(achievements)

    def fetch_progress(self, session: Session, title: TitleRef) -> list[EarnedRecord]:
        context = f"GetPlayerAchievements appid={title.title_id}"
        data = self._http.get_json(
            STEAM_PLAYER_ACHIEVEMENTS_URL,
            params={
                "key": session.access_token,
                "steamid": self.steam_id,
                "appid": title.title_id,
            },
            status_handlers={400: _NO_STATS, 403: _NO_STATS},
            endpoint="http_player_achievements",
            context=context,
            on_fail_return=None,
        )
        if data is None:
            raise TitleFetchError(f"Steam {context}")
        playerstats = get_path(data, "playerstats") if data is not _NO_STATS else None
        if not isinstance(playerstats, dict) or playerstats.get("success") is False:
            raise TitleFetchError(f"Steam {context}", "player achievements unavailable")
        achievements = playerstats.get("achievements")
        if achievements is None:
            # Titles without stats for this player omit the list entirely.
            return []
        return parse_player_achievements(achievements)

    def format_stats(self) -> str:
        return self._http.format_stats()


def parse_schema_achievements(raw: object) -> list[AchievementDefinition]:
    out: list[AchievementDefinition] = []
    for ach in get_list_of_dicts(raw):
        key = as_str(ach.get("name"))
        if not key:
            continue
        out.append(
            AchievementDefinition(
                key=key,
                name=as_str(ach.get("displayName")) or key,
                description=as_str(ach.get("description")),
                icon_url=as_str(ach.get("icongray")),
                icon_url_unlocked=optional_str(ach.get("icon")),
            )
        )
    return out


def parse_player_achievements(raw: object) -> list[EarnedRecord]:
    out: list[EarnedRecord] = []
    for ach in get_list_of_dicts(raw):
        key = as_str(ach.get("apiname"))
        if not key:
            continue
        earned = as_flag(ach.get("achieved"))
        out.append(
            EarnedRecord(
                key=key,
                earned=earned,
                earned_at=iso_from_epoch_seconds(ach.get("unlocktime")) if earned else None,
            )
        )
    return out
