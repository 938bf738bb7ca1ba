from __future__ import annotations

from typing import Protocol

from ..models import AchievementDefinition, EarnedRecord, Session, TitleRef
from .policies import InclusionPolicy


class AchievementProviderLike(Protocol):
    """
    The four pipeline stages a provider implements: session, titles, catalog and progress.
    """

    provider: str
    inclusion_policy: InclusionPolicy
    max_workers: int

    def obtain_session(self) -> Session: ...

    def refresh_if_expired(self, session: Session) -> Session: ...

    def list_titles(self, session: Session) -> list[TitleRef]: ...

    def fetch_catalog(self, session: Session, title: TitleRef) -> list[AchievementDefinition]: ...

    def fetch_progress(self, session: Session, title: TitleRef) -> list[EarnedRecord]: ...

    def format_stats(self) -> str: ...
