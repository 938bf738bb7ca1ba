from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests

from ..config import PSN, REQUEST
from ..errors import AuthenticationError, NoAchievementsDefined, TitleFetchError
from ..models import AchievementDefinition, EarnedRecord, Session, TitleRef
from ..pipelines.policies import HasProgressPolicy, InclusionPolicy
from ..utils.utilities import RateLimiter
from .http_client import ProviderHTTPClient
from .parse import as_flag, as_int, as_str, get_list_of_dicts, optional_str

PSN_AUTH_BASE_URL = "https://ca.account.sony.com/api/authz/v3/oauth"
PSN_AUTHORIZE_URL = f"{PSN_AUTH_BASE_URL}/authorize"
PSN_TOKEN_URL = f"{PSN_AUTH_BASE_URL}/token"
PSN_TROPHY_API_URL = "https://m.np.playstation.com/api/trophy/v1"

# Public client of the PlayStation mobile app; the NPSSO cookie is the actual credential.
PSN_CLIENT_ID = "09515159-7237-4370-9b40-3806e67c0891"
PSN_BASIC_AUTH = (
    "Basic MDk1MTUxNTktNzIzNy00MzcwLTliNDAtMzgwNmU2N2MwODkxOnVjUGprYTV0bnRCMktxc1A="
)
PSN_REDIRECT_URI = "com.scee.psxandroid.scecompcall://redirect"
PSN_SCOPE = "psn:mobile.v2.core psn:clientapp"

_UNAUTHORIZED = object()


class PSNClient:
    """
    PlayStation Network trophy adapter.

    Auth flow: NPSSO cookie -> authorization code -> access/refresh tokens. The access token is
    short-lived; `refresh_if_expired` swaps it using the refresh token once
    `issued_at + expires_in` has passed.

    A title is cached only if the player earned at least one trophy in it.
    """

    provider = "psn"

    def __init__(
        self,
        npsso: str,
        min_interval_s: float = PSN.min_interval_s,
        inclusion_policy: InclusionPolicy | None = None,
        max_workers: int = PSN.max_parallel_titles,
        page_size: int = PSN.titles_page_size,
    ):
        self.npsso = npsso
        self.page_size = max(1, int(page_size))
        self.inclusion_policy = inclusion_policy or HasProgressPolicy()
        self.max_workers = max(1, int(max_workers))
        self._http = ProviderHTTPClient(
            label="PSN",
            endpoints=(
                "http_auth",
                "http_trophy_titles",
                "http_title_trophies",
                "http_earned_trophies",
            ),
            ratelimiter=RateLimiter(min_interval_s=min_interval_s),
            status_handlers={401: _UNAUTHORIZED},
        )
        self.stats = self._http.stats

    # -------------------------------------------------
    # Session
    # -------------------------------------------------
    def obtain_session(self) -> Session:
        if not self.npsso:
            raise AuthenticationError("PSN: an NPSSO token is required")
        code = self._exchange_npsso_for_code()
        session = self._request_tokens(
            {
                "code": code,
                "redirect_uri": PSN_REDIRECT_URI,
                "grant_type": "authorization_code",
                "token_format": "jwt",
            },
            context="authorization code exchange",
        )
        logging.info(f"[PSN] Authenticated (token expires in {int(session.expires_in or 0)}s)")
        return session

    def refresh_if_expired(self, session: Session) -> Session:
        if not session.is_expired(margin_s=PSN.expiry_margin_s):
            return session
        if not session.refresh_token:
            raise AuthenticationError("PSN: access token expired and no refresh token is available")
        logging.info("[PSN] Access token expired; refreshing")
        return self._request_tokens(
            {
                "refresh_token": session.refresh_token,
                "grant_type": "refresh_token",
                "token_format": "jwt",
                "scope": PSN_SCOPE,
            },
            context="token refresh",
        )

    def _exchange_npsso_for_code(self) -> str:
        self._http.count("http_auth")
        try:
            r = self._http.session.get(
                PSN_AUTHORIZE_URL,
                params={
                    "access_type": "offline",
                    "client_id": PSN_CLIENT_ID,
                    "redirect_uri": PSN_REDIRECT_URI,
                    "response_type": "code",
                    "scope": PSN_SCOPE,
                },
                headers={"Cookie": f"npsso={self.npsso}"},
                allow_redirects=False,
                timeout=REQUEST.timeout_s,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"PSN: NPSSO exchange failed: {e}") from e
        location = str(r.headers.get("Location", "") or "")
        codes = parse_qs(urlparse(location).query).get("code", [])
        if not codes:
            raise AuthenticationError(
                "PSN: NPSSO exchange did not return an authorization code "
                "(the NPSSO token may be expired or invalid)"
            )
        return codes[0]

    def _request_tokens(self, form: dict[str, str], *, context: str) -> Session:
        self._http.count("http_auth")
        # Form-encoded body (not URL params) keeps secrets out of tracebacks/logs.
        try:
            r = self._http.session.post(
                PSN_TOKEN_URL,
                data=form,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": PSN_BASIC_AUTH,
                },
                timeout=REQUEST.timeout_s,
            )
            r.raise_for_status()
            payload = r.json()
        except (requests.RequestException, ValueError) as e:
            raise AuthenticationError(f"PSN: {context} failed: {e}") from e
        token = as_str(payload.get("access_token")) if isinstance(payload, dict) else ""
        if not token:
            raise AuthenticationError(f"PSN: {context} returned no access token")
        expires_in = as_int(payload.get("expires_in"))
        return Session(
            provider=self.provider,
            access_token=token,
            issued_at=time.time(),
            expires_in=float(expires_in) if expires_in is not None else None,
            refresh_token=as_str(payload.get("refresh_token")),
        )

    @staticmethod
    def _auth_headers(session: Session) -> dict[str, str]:
        return {"Authorization": f"Bearer {session.access_token}"}

    # -------------------------------------------------
    # Titles
    # -------------------------------------------------
    def list_titles(self, session: Session) -> list[TitleRef]:
        titles: list[TitleRef] = []
        offset = 0
        while True:
            data = self._http.get_json(
                f"{PSN_TROPHY_API_URL}/users/me/trophyTitles",
                params={"limit": self.page_size, "offset": offset},
                headers=self._auth_headers(session),
                endpoint="http_trophy_titles",
                context=f"trophyTitles offset={offset}",
                on_fail_return=None,
            )
            if data is _UNAUTHORIZED:
                raise AuthenticationError("PSN: access token rejected (trophyTitles)")
            if not isinstance(data, dict):
                raise TitleFetchError("PSN trophyTitles", "request failed")
            items = get_list_of_dicts(data.get("trophyTitles"))
            for it in items:
                comm_id = as_str(it.get("npCommunicationId"))
                if not comm_id:
                    continue
                titles.append(
                    TitleRef(
                        title_id=comm_id,
                        name=as_str(it.get("trophyTitleName")) or comm_id,
                        image_url=as_str(it.get("trophyTitleIconUrl")),
                        service_name=as_str(it.get("npServiceName")),
                    )
                )
            total = as_int(data.get("totalItemCount"))
            offset += len(items)
            if not items or total is None or offset >= total:
                break
        return titles

    # -------------------------------------------------
    # Catalog / progress
    # -------------------------------------------------
    def _trophy_params(self, title: TitleRef) -> dict[str, Any]:
        # PS3/PS4/Vita titles live under the legacy "trophy" service; PS5 uses "trophy2".
        return {"npServiceName": title.service_name} if title.service_name else {}

    def fetch_catalog(self, session: Session, title: TitleRef) -> list[AchievementDefinition]:
        context = f"title trophies {title.title_id}"
        data = self._http.get_json(
            f"{PSN_TROPHY_API_URL}/npCommunicationIds/{title.title_id}/trophyGroups/all/trophies",
            params=self._trophy_params(title),
            headers=self._auth_headers(session),
            endpoint="http_title_trophies",
            context=context,
            on_fail_return=None,
        )
        if not isinstance(data, dict):
            raise TitleFetchError(f"PSN {context}")
        trophies = data.get("trophies")
        if not isinstance(trophies, list):
            raise TitleFetchError(f"PSN {context}", "unexpected response")
        if not trophies:
            raise NoAchievementsDefined(f"PSN {context}")
        return parse_title_trophies(trophies)

    def fetch_progress(self, session: Session, title: TitleRef) -> list[EarnedRecord]:
        context = f"earned trophies {title.title_id}"
        data = self._http.get_json(
            f"{PSN_TROPHY_API_URL}/users/me/npCommunicationIds/{title.title_id}"
            "/trophyGroups/all/trophies",
            params=self._trophy_params(title),
            headers=self._auth_headers(session),
            endpoint="http_earned_trophies",
            context=context,
            on_fail_return=None,
        )
        if not isinstance(data, dict):
            raise TitleFetchError(f"PSN {context}")
        return parse_earned_trophies(data.get("trophies"))

    def format_stats(self) -> str:
        return self._http.format_stats()


def parse_title_trophies(raw: object) -> list[AchievementDefinition]:
    out: list[AchievementDefinition] = []
    for t in get_list_of_dicts(raw):
        trophy_id = t.get("trophyId")
        if trophy_id is None or isinstance(trophy_id, bool):
            continue
        key = str(trophy_id)
        out.append(
            AchievementDefinition(
                key=key,
                name=as_str(t.get("trophyName")) or key,
                description=as_str(t.get("trophyDetail")),
                icon_url=as_str(t.get("trophyIconUrl")),
            )
        )
    return out


def parse_earned_trophies(raw: object) -> list[EarnedRecord]:
    out: list[EarnedRecord] = []
    for t in get_list_of_dicts(raw):
        trophy_id = t.get("trophyId")
        if trophy_id is None or isinstance(trophy_id, bool):
            continue
        earned = as_flag(t.get("earned"))
        out.append(
            EarnedRecord(
                key=str(trophy_id),
                earned=earned,
                earned_at=optional_str(t.get("earnedDateTime")) if earned else None,
            )
        )
    return out
