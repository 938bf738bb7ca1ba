from __future__ import annotations


class AchievementCacheError(Exception):
    """Base class for errors raised by the achievement pipelines."""


class AuthenticationError(AchievementCacheError):
    """
    Credentials were rejected or a session could not be obtained/refreshed.

    Not recoverable within a run.
    """


class TitleFetchError(AchievementCacheError):
    """A per-title request failed or returned an unusable payload."""

    def __init__(self, context: str, message: str = "request failed"):
        super().__init__(f"{context}: {message}")
        self.context = context


class NoAchievementsDefined(TitleFetchError):
    """The title exists but defines no achievements (a valid empty state)."""

    def __init__(self, context: str):
        super().__init__(context, "no achievements defined")


class CacheWriteError(AchievementCacheError):
    """The provider cache could not be persisted."""
