"""
scorer.py — ingredient → sustainability score matching and aggregation.

Each ingredient is looked up with a case-insensitive "contains" query and gets
at most one matching row. When the table returns several candidates the
choice is made here, deterministically:

  1. a row whose name equals the ingredient (case-insensitive)
  2. otherwise the shortest row name (closest to the ingredient itself)
  3. ties broken alphabetically

averageScore is the round-half-up mean of matched scores, or None when nothing
matched. Unmatched ingredients are kept with score=None — a miss is not an error.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from models import IngredientRecord, ScoreReport, round_half_up, tidy
from score_backends.base import IngredientScoreTable, ScoreRow

logger = logging.getLogger(__name__)


def pick_match(ingredient: str, rows: Sequence[ScoreRow]) -> Optional[ScoreRow]:
    needle = ingredient.strip().lower()
    if not needle:
        return None
    # Backends may be looser than plain substring (e.g. ilike '_' wildcards)
    rows = [r for r in rows if needle in r.ingredient_name.lower()]
    if not rows:
        return None
    for row in rows:
        if row.ingredient_name.strip().lower() == needle:
            return row
    return min(rows, key=lambda r: (len(r.ingredient_name), r.ingredient_name.lower()))


def average(scores: Sequence[float]) -> Optional[int]:
    if not scores:
        return None
    return round_half_up(sum(scores) / len(scores))


class SustainabilityScorer:

    def __init__(self, table: IngredientScoreTable) -> None:
        self._table = table

    async def score(self, ingredients: Iterable[str]) -> ScoreReport:
        names = list(ingredients)
        records: list[IngredientRecord] = []

        # One read per ingredient, awaited in order
        for name in names:
            row = pick_match(name, await self._table.candidates(name))
            if row is None:
                records.append(IngredientRecord(name=name))
                logger.debug("No score match for %r", name)
            else:
                records.append(
                    IngredientRecord(name=name, score=tidy(row.score), matched_with=row.ingredient_name)
                )

        matched = [r.score for r in records if r.matched]
        report = ScoreReport(
            records=records,
            average_score=average(matched),
            matched=len(matched),
            total=len(names),
        )
        logger.info(
            "Scored %d/%d ingredients via %s — average %s",
            report.matched, report.total, self._table.name, report.average_score,
        )
        return report
