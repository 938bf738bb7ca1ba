from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models import EarnedRecord, TitleRef


class InclusionPolicy:
    """
    Decide whether a title belongs in a provider cache.

    `prefilter` runs on title metadata before any per-title request; `include` runs after the
    progress fetch. The defaults accept everything.
    """

    name = "all"

    def prefilter(self, title: TitleRef) -> bool:
        return True

    def include(self, title: TitleRef, progress: Sequence[EarnedRecord]) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class HasProgressPolicy(InclusionPolicy):
    """
    Keep a title only if the player earned at least one achievement in it.

    Titles the player owns but has not unlocked anything in are dropped.
    """

    name = "has-progress"

    def include(self, title: TitleRef, progress: Sequence[EarnedRecord]) -> bool:
        return any(r.earned for r in progress)


class HasPlaytimePolicy(InclusionPolicy):
    """Keep a title if the provider reports any playtime, regardless of achievements."""

    name = "has-playtime"

    def prefilter(self, title: TitleRef) -> bool:
        return (title.playtime_minutes or 0) > 0


@dataclass(frozen=True)
class DeviceExclusionPolicy(InclusionPolicy):
    """
    Drop titles available only on a single, excluded device category.

    A title listing the excluded device alongside others is kept; so is a title without any
    device information.
    """

    excluded: tuple[str, ...] = ("Win32",)
    name = "device-exclusion"

    def prefilter(self, title: TitleRef) -> bool:
        devices = title.devices
        return not (len(devices) == 1 and devices[0] in self.excluded)
