from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

import requests

from ..errors import CacheWriteError, NoAchievementsDefined, TitleFetchError
from ..models import GameRecord, Session, TitleRef
from ..schema import PROVIDER_LABELS
from ..utils.merger import build_game_record, orphaned_keys
from ..utils.progress import TitleProgress
from .artifacts import ProviderCacheStore
from .protocols import AchievementProviderLike

_OK = "ok"
_EXCLUDED = "excluded"
_FAILED = "failed"


@dataclass
class ProviderRunResult:
    provider: str
    records: list[GameRecord] = field(default_factory=list)
    titles_total: int = 0
    titles_skipped_prefilter: int = 0
    titles_excluded: int = 0
    titles_failed: int = 0
    previous_count: int | None = None
    cache_path: Path | None = None
    write_error: str | None = None
    list_error: str | None = None


class _SessionHolder:
    """Hands out a valid session to title workers, refreshing it at most once at a time."""

    def __init__(self, adapter: AchievementProviderLike, session: Session) -> None:
        self._adapter = adapter
        self._session = session
        self._lock = threading.Lock()

    def current(self) -> Session:
        with self._lock:
            self._session = self._adapter.refresh_if_expired(self._session)
            return self._session


def provider_label(provider: str) -> str:
    return PROVIDER_LABELS.get(provider, f"[{provider.upper()}]")


def process_title(
    adapter: AchievementProviderLike,
    session: Session,
    title: TitleRef,
    *,
    label: str,
) -> GameRecord | None:
    """
    Fetch, filter and merge one title.

    Returns None when the inclusion policy rejects the title. Request failures propagate as
    TitleFetchError; a title without achievements is a valid empty state.
    """
    try:
        catalog = adapter.fetch_catalog(session, title)
    except NoAchievementsDefined:
        logging.info(f"{label} {title.name}: no achievements defined")
        catalog = []

    progress = adapter.fetch_progress(session, title) if catalog else []
    if not adapter.inclusion_policy.include(title, progress):
        logging.debug(
            f"{label} {title.name}: excluded by {adapter.inclusion_policy.name} policy"
        )
        return None

    orphans = orphaned_keys(catalog, progress)
    if orphans:
        logging.warning(
            f"{label} {title.name}: {len(orphans)} earned achievement(s) missing from the "
            f"catalog were dropped: {', '.join(orphans[:5])}"
        )
    record = build_game_record(title, catalog, progress)
    logging.info(
        f"{label} {title.name}: {record.earned_count}/{record.total_count} achievements earned"
    )
    return record


def run_provider(
    adapter: AchievementProviderLike,
    store: ProviderCacheStore,
    *,
    max_workers: int | None = None,
) -> ProviderRunResult:
    """
    Rebuild one provider's cache from scratch.

    Session errors are fatal and propagate. A failed title list is recorded in `list_error` and
    leaves the existing cache untouched. A failing title is logged and skipped. The cache is
    written exactly once, after every title finished, with records in title-list order.
    """
    provider = adapter.provider
    label = provider_label(provider)
    result = ProviderRunResult(provider=provider)

    previous = store.read(provider)
    if previous is not None:
        result.previous_count = len(previous)
        logging.info(f"{label} Existing cache holds {len(previous)} games; rebuilding it")

    session = adapter.obtain_session()
    try:
        titles = adapter.list_titles(session)
    except (TitleFetchError, requests.RequestException) as e:
        result.list_error = str(e)
        logging.error(f"{label} Could not list titles, keeping the existing cache: {e}")
        return result
    result.titles_total = len(titles)

    policy = adapter.inclusion_policy
    selected: list[TitleRef] = []
    for title in titles:
        if policy.prefilter(title):
            selected.append(title)
        else:
            result.titles_skipped_prefilter += 1
            logging.debug(f"{label} {title.name}: skipped by {policy.name} policy")
    logging.info(
        f"{label} {len(titles)} titles listed, {len(selected)} selected ({policy.name} policy)"
    )

    holder = _SessionHolder(adapter, session)
    tracker = TitleProgress(label, total=len(selected))
    outcomes: list[tuple[str, GameRecord | None]] = [(_FAILED, None)] * len(selected)

    def _run_one(title: TitleRef) -> tuple[str, GameRecord | None]:
        logging.info(f"{label} Processing title: {title.name} ({title.title_id})")
        try:
            record = process_title(adapter, holder.current(), title, label=label)
        except (TitleFetchError, requests.RequestException) as e:
            logging.error(f"{label} Skipping '{title.name}': {e}")
            return _FAILED, None
        return (_OK, record) if record is not None else (_EXCLUDED, None)

    workers = max(1, int(max_workers or getattr(adapter, "max_workers", 1) or 1))
    if workers == 1 or len(selected) <= 1:
        for idx, title in enumerate(selected):
            outcomes[idx] = _run_one(title)
            tracker.advance()
    else:
        workers = min(workers, len(selected))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(_run_one, title): idx for idx, title in enumerate(selected)}
            for future in as_completed(futures):
                try:
                    outcomes[futures[future]] = future.result()
                except BaseException:
                    for f in futures:
                        f.cancel()
                    raise
                tracker.advance()

    for status, record in outcomes:
        if status == _OK and record is not None:
            result.records.append(record)
        elif status == _EXCLUDED:
            result.titles_excluded += 1
        else:
            result.titles_failed += 1

    try:
        result.cache_path = store.write(provider, result.records)
    except CacheWriteError as e:
        result.write_error = str(e)
        logging.error(f"{label} {e}")
    else:
        logging.info(
            f"✔ {label} Cache written: {result.cache_path} (games={len(result.records)}, "
            f"titles={result.titles_total}, prefiltered={result.titles_skipped_prefilter}, "
            f"excluded={result.titles_excluded}, failed={result.titles_failed})"
        )

    fmt = getattr(adapter, "format_stats", None)
    if callable(fmt):
        logging.info(f"{label} HTTP stats: {fmt()}")
    return result
