"""
Supabase (PostgREST) ingredient score table.

Query shape, at most two requests per ingredient:
  GET /rest/v1/{table}?select=*&Ingredient Name=ilike.sugar                        (exact)
  GET /rest/v1/{table}?select=*&Ingredient Name=ilike.%sugar%&order=...&limit=25   (contains)

The contains query only runs when no row is named exactly like the
ingredient. PostgREST can't order by name length, so it orders by name and
the scorer picks the shortest among the rows returned.

Rows look like {"Ingredient Name": "Cane Sugar", "Score": 30, ...}; extra
columns are ignored.
"""
from __future__ import annotations

import logging

import aiohttp

from errors import ServiceUnavailableError
from score_backends.base import IngredientScoreTable, ScoreRow

logger = logging.getLogger(__name__)

_TIMEOUT = aiohttp.ClientTimeout(total=10)
_NAME_COLUMN = "Ingredient Name"


def _needle(ingredient: str) -> str:
    # '*' is PostgREST's alias for '%'; strip both so OCR text can't inject wildcards
    return ingredient.strip().replace("%", "").replace("*", "").strip()


class SupabaseScoreTable(IngredientScoreTable):

    def __init__(self, base_url: str, api_key: str, table: str = "ingredients", limit: int = 25) -> None:
        self._url   = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._table = table
        self._limit = limit
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "apikey":        api_key,
            "Accept":        "application/json",
        }

    @property
    def name(self) -> str:
        return f"Supabase table {self._table!r}"

    async def _query(self, session: aiohttp.ClientSession, params: dict) -> list[ScoreRow]:
        async with session.get(
            self._url, params={"select": "*", **params}, headers=self._headers, timeout=_TIMEOUT
        ) as resp:
            if resp.status != 200:
                body = await resp.text()
                raise ServiceUnavailableError(
                    f"Ingredient lookup failed ({resp.status}): {body[:200]}"
                )
            records = await resp.json(content_type=None)

        rows: list[ScoreRow] = []
        for record in records or []:
            try:
                rows.append(ScoreRow.from_record(record))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed score row: %r", record)
        return rows

    async def candidates(self, ingredient: str) -> list[ScoreRow]:
        needle = _needle(ingredient)
        if not needle:
            return []
        try:
            async with aiohttp.ClientSession() as session:
                # ilike treats '_' as a wildcard, so recheck the exact rows
                exact = [
                    row for row in await self._query(session, {_NAME_COLUMN: f"ilike.{needle}"})
                    if row.ingredient_name.strip().lower() == needle.lower()
                ]
                if exact:
                    return exact
                return await self._query(session, {
                    _NAME_COLUMN: f"ilike.%{needle}%",
                    "order":      f'"{_NAME_COLUMN}".asc',
                    "limit":      str(self._limit),
                })
        except aiohttp.ClientError as exc:
            raise ServiceUnavailableError(f"Ingredient lookup failed: {exc}") from exc
