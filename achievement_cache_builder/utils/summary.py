from __future__ import annotations

from typing import Iterable

import pandas as pd

from ..models import GameRecord
from ..schema import SUMMARY_COLUMNS
from .merger import completion


def build_completion_table(records_by_provider: dict[str, Iterable[GameRecord]]) -> pd.DataFrame:
    """
    Flatten cached game records into one row per (provider, game).

    CompletionPercent is rounded to one decimal; games without achievements report 0.0.
    """
    rows: list[dict[str, object]] = []
    for provider, records in records_by_provider.items():
        for rec in records:
            earned, total = completion(rec.achievements)
            pct = round(100.0 * earned / total, 1) if total else 0.0
            rows.append(
                {
                    "Provider": provider,
                    "TitleId": rec.title_id,
                    "Game": rec.game_name,
                    "Earned": earned,
                    "Total": total,
                    "CompletionPercent": pct,
                }
            )
    return pd.DataFrame(rows, columns=list(SUMMARY_COLUMNS))


def format_completion_line(provider: str, rec: GameRecord) -> str:
    earned, total = completion(rec.achievements)
    pct = f"{100.0 * earned / total:5.1f}%" if total else "   n/a"
    return f"{provider:<5} {pct} {earned:>4}/{total:<4} {rec.game_name}"
