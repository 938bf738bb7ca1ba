from __future__ import annotations

import threading
from typing import Any

from ..config import XBOX
from ..errors import AuthenticationError, NoAchievementsDefined, TitleFetchError
from ..models import AchievementDefinition, EarnedRecord, Session, TitleRef
from ..pipelines.policies import DeviceExclusionPolicy, InclusionPolicy
from ..utils.utilities import RateLimiter
from .http_client import ProviderHTTPClient
from .parse import as_str, get_list_of_dicts, get_path

XBL_API_URL = "https://xbl.io/api/v2"

# Locked achievements report this placeholder instead of omitting timeUnlocked.
_NEVER_UNLOCKED_PREFIX = "0001-01-01"

_UNAUTHORIZED = object()


class XboxClient:
    """
    Xbox Live adapter backed by the OpenXBL API (xbl.io).

    OpenXBL returns the full achievement list with per-player progress in one payload, so the
    catalog and the progress of a title are both derived from a single request.
    """

    provider = "xbox"

    def __init__(
        self,
        api_key: str,
        xuid: str,
        min_interval_s: float = XBOX.min_interval_s,
        inclusion_policy: InclusionPolicy | None = None,
        max_workers: int = XBOX.max_parallel_titles,
    ):
        self.api_key = api_key
        self.xuid = xuid
        self.inclusion_policy = inclusion_policy or DeviceExclusionPolicy(
            excluded=XBOX.excluded_devices
        )
        self.max_workers = max(1, int(max_workers))
        self._http = ProviderHTTPClient(
            label="Xbox",
            endpoints=("http_titles", "http_player_achievements"),
            ratelimiter=RateLimiter(min_interval_s=min_interval_s),
            status_handlers={401: _UNAUTHORIZED, 403: _UNAUTHORIZED},
        )
        self.stats = self._http.stats
        # Raw achievement payloads fetched for the catalog, consumed by fetch_progress.
        self._pending: dict[str, list[dict[str, Any]]] = {}
        self._pending_lock = threading.Lock()

    # -------------------------------------------------
    # Session
    # -------------------------------------------------
    def obtain_session(self) -> Session:
        if not self.api_key or not self.xuid:
            raise AuthenticationError("Xbox: api_key and xuid are required")
        return Session(provider=self.provider, access_token=self.api_key)

    def refresh_if_expired(self, session: Session) -> Session:
        # API keys do not expire.
        return session

    @staticmethod
    def _headers(session: Session) -> dict[str, str]:
        return {"x-authorization": session.access_token, "accept": "*/*"}

    # -------------------------------------------------
    # Titles
    # -------------------------------------------------
    def list_titles(self, session: Session) -> list[TitleRef]:
        data = self._http.get_json(
            f"{XBL_API_URL}/achievements",
            headers=self._headers(session),
            endpoint="http_titles",
            context="title history",
            on_fail_return=None,
        )
        if data is _UNAUTHORIZED:
            raise AuthenticationError("Xbox: API key rejected (title history)")
        titles_raw = get_path(data, "titles")
        if not isinstance(titles_raw, list):
            raise TitleFetchError("Xbox title history", "unexpected response")

        titles: list[TitleRef] = []
        for t in get_list_of_dicts(titles_raw):
            title_id = as_str(t.get("titleId"))
            if not title_id:
                continue
            devices = t.get("devices")
            titles.append(
                TitleRef(
                    title_id=title_id,
                    name=as_str(t.get("name")) or title_id,
                    image_url=as_str(t.get("displayImage")),
                    devices=tuple(as_str(d) for d in devices) if isinstance(devices, list) else (),
                )
            )
        return titles

    # -------------------------------------------------
    # Catalog / progress
    # -------------------------------------------------
    def _fetch_player_achievements(
        self, session: Session, title: TitleRef
    ) -> list[dict[str, Any]]:
        context = f"achievements titleId={title.title_id}"
        data = self._http.get_json(
            f"{XBL_API_URL}/achievements/player/{self.xuid}/{title.title_id}",
            headers=self._headers(session),
            endpoint="http_player_achievements",
            context=context,
            on_fail_return=None,
        )
        if not isinstance(data, dict):
            raise TitleFetchError(f"Xbox {context}")
        achievements = data.get("achievements")
        if not isinstance(achievements, list):
            raise TitleFetchError(f"Xbox {context}", "unexpected response")
        if not achievements:
            raise NoAchievementsDefined(f"Xbox {context}")
        return get_list_of_dicts(achievements)

    def fetch_catalog(self, session: Session, title: TitleRef) -> list[AchievementDefinition]:
        raw = self._fetch_player_achievements(session, title)
        with self._pending_lock:
            self._pending[title.title_id] = raw
        return parse_achievement_definitions(raw)

    def fetch_progress(self, session: Session, title: TitleRef) -> list[EarnedRecord]:
        with self._pending_lock:
            raw = self._pending.pop(title.title_id, None)
        if raw is None:
            raw = self._fetch_player_achievements(session, title)
        return parse_achievement_progress(raw)

    def format_stats(self) -> str:
        return self._http.format_stats()


def _icon_url(ach: dict[str, Any]) -> str:
    for asset in get_list_of_dicts(ach.get("mediaAssets")):
        if as_str(asset.get("type")).casefold() == "icon":
            return as_str(asset.get("url"))
    return ""


def parse_achievement_definitions(raw: object) -> list[AchievementDefinition]:
    out: list[AchievementDefinition] = []
    for ach in get_list_of_dicts(raw):
        key = as_str(ach.get("id"))
        if not key:
            continue
        out.append(
            AchievementDefinition(
                key=key,
                name=as_str(ach.get("name")) or key,
                description=as_str(ach.get("description")) or as_str(ach.get("lockedDescription")),
                icon_url=_icon_url(ach),
            )
        )
    return out


def parse_achievement_progress(raw: object) -> list[EarnedRecord]:
    out: list[EarnedRecord] = []
    for ach in get_list_of_dicts(raw):
        key = as_str(ach.get("id"))
        if not key:
            continue
        earned = as_str(ach.get("progressState")) == "Achieved"
        unlocked = as_str(get_path(ach, "progression", "timeUnlocked"))
        if not unlocked or unlocked.startswith(_NEVER_UNLOCKED_PREFIX):
            unlocked = ""
        out.append(
            EarnedRecord(
                key=key,
                earned=earned,
                earned_at=unlocked if (earned and unlocked) else None,
            )
        )
    return out
