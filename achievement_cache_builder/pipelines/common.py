from __future__ import annotations

import json
import logging
from typing import Iterable, TextIO

from ..models import GameRecord
from .achievements_pipeline import ProviderRunResult, provider_label


def log_run_stats(results: Iterable[ProviderRunResult]) -> None:
    for res in results:
        label = provider_label(res.provider)
        if res.list_error:
            logging.info(f"{label} title list failed ({res.list_error}); cache NOT written")
            continue
        status = "cache NOT written" if res.write_error else f"cache={res.cache_path}"
        logging.info(
            f"{label} games={len(res.records)} titles={res.titles_total} "
            f"prefiltered={res.titles_skipped_prefilter} excluded={res.titles_excluded} "
            f"failed={res.titles_failed} {status}"
        )


def dump_records(records_by_provider: dict[str, list[GameRecord]], out: TextIO) -> None:
    """Write the merged game lists as one JSON object keyed by provider."""
    payload = {
        provider: [r.to_dict() for r in records]
        for provider, records in records_by_provider.items()
    }
    out.write(json.dumps(payload, indent=2, ensure_ascii=False))
    out.write("\n")
