"""
Local SQLite ingredient score table (database.py).

Useful offline and in development: seed it once from a CSV export of the
hosted table (SCORES_CSV) and point SCORE_BACKEND at "sqlite".
"""
from __future__ import annotations

import logging
from typing import Optional

import aiosqlite

import database as db
from errors import ServiceUnavailableError
from score_backends.base import IngredientScoreTable, ScoreRow

logger = logging.getLogger(__name__)


class SQLiteScoreTable(IngredientScoreTable):

    def __init__(self, limit: int = 25) -> None:
        self._limit = limit
        self._ready = False

    @property
    def name(self) -> str:
        return f"SQLite ({db.DB_PATH})"

    async def setup(self, seed_csv: Optional[str] = None) -> None:
        """Create the schema and, if the table is empty, import `seed_csv`."""
        await db.init_db()
        if seed_csv and await db.count_scores() == 0:
            await db.import_csv(seed_csv)
        self._ready = True
        logger.info("Score table ready: %d ingredients", await db.count_scores())

    async def candidates(self, ingredient: str) -> list[ScoreRow]:
        try:
            if not self._ready:
                await self.setup()
            rows = await db.find_candidates(ingredient, limit=self._limit)
        except aiosqlite.Error as exc:
            raise ServiceUnavailableError(f"Ingredient lookup failed: {exc}") from exc
        return [ScoreRow(ingredient_name=name, score=score) for name, score in rows]
