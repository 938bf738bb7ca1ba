from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AchievementDefinition:
    """One achievement a title makes possible, independent of any player."""

    key: str
    name: str
    description: str
    icon_url: str
    icon_url_unlocked: str | None = None


@dataclass(frozen=True)
class EarnedRecord:
    """A player-specific statement about one achievement key."""

    key: str
    earned: bool
    earned_at: str | None = None


@dataclass(frozen=True)
class AchievementView:
    """A catalog entry annotated with the player's earned status."""

    key: str
    name: str
    description: str
    icon_url: str
    icon_url_unlocked: str | None
    earned: bool
    earned_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        # Optional fields are omitted rather than written as null, so "absent" has exactly one
        # on-disk representation.
        out: dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "iconUrl": self.icon_url,
        }
        if self.icon_url_unlocked is not None:
            out["iconUrlUnlocked"] = self.icon_url_unlocked
        out["earned"] = self.earned
        if self.earned_at is not None:
            out["earnedAt"] = self.earned_at
        return out

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> AchievementView:
        return AchievementView(
            key=str(raw["key"]),
            name=str(raw.get("name", "") or ""),
            description=str(raw.get("description", "") or ""),
            icon_url=str(raw.get("iconUrl", "") or ""),
            icon_url_unlocked=raw.get("iconUrlUnlocked"),
            earned=bool(raw.get("earned", False)),
            earned_at=raw.get("earnedAt"),
        )


@dataclass
class GameRecord:
    game_name: str
    image_url: str
    achievements: list[AchievementView] = field(default_factory=list)
    title_id: str = ""

    @property
    def earned_count(self) -> int:
        return sum(1 for a in self.achievements if a.earned)

    @property
    def total_count(self) -> int:
        return len(self.achievements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameName": self.game_name,
            "titleId": self.title_id,
            "imageUrl": self.image_url,
            "achievements": [a.to_dict() for a in self.achievements],
        }

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> GameRecord:
        achievements = raw.get("achievements")
        if not isinstance(achievements, list):
            raise ValueError("game record is missing its achievements list")
        return GameRecord(
            game_name=str(raw["gameName"]),
            image_url=str(raw.get("imageUrl", "") or ""),
            achievements=[AchievementView.from_dict(a) for a in achievements],
            title_id=str(raw.get("titleId", "") or ""),
        )


@dataclass(frozen=True)
class TitleRef:
    """
    One entry of a provider's title list.

    `playtime_minutes` and `devices` are only populated by providers that report them; the
    inclusion policies read them.
    """

    title_id: str
    name: str
    image_url: str = ""
    playtime_minutes: int | None = None
    devices: tuple[str, ...] = ()
    service_name: str = ""


@dataclass
class Session:
    provider: str
    access_token: str
    issued_at: float = field(default_factory=time.time)
    expires_in: float | None = None
    refresh_token: str = ""
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def expires_at(self) -> float | None:
        if self.expires_in is None:
            return None
        return self.issued_at + float(self.expires_in)

    def is_expired(self, now: float | None = None, *, margin_s: float = 0.0) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= expires_at - margin_s
