"""
Tests for score_backends/.

Covers:
  - ScoreRow.from_record(): hosted column names
  - SupabaseScoreTable: exact query then ranked contains query, wildcard
    stripping, malformed rows skipped, HTTP / transport errors (aiohttp mocked)
  - SQLiteScoreTable: setup seeds from CSV once, substring candidates,
    lazy setup on first lookup, exact row kept past the row limit
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

import database as db
from errors import ServiceUnavailableError
from score_backends.base import ScoreRow
from score_backends.sqlite_backend import SQLiteScoreTable
from score_backends.supabase_backend import SupabaseScoreTable
from scorer import SustainabilityScorer


def make_response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status = status
    resp.json = AsyncMock(return_value=payload)
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def make_session(status=200, payload=None, text=""):
    session = MagicMock()
    session.get = MagicMock(return_value=make_response(status, payload, text))
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


@pytest.fixture
def scores_csv(tmp_path):
    path = tmp_path / "scores.csv"
    path.write_text(
        "Ingredient Name,Score\n"
        "Cane Sugar,30\n"
        "Sea Salt,70\n"
        "Filtered Water,95\n",
        encoding="utf-8",
    )
    return path


class TestScoreRow:
    def test_from_record(self):
        row = ScoreRow.from_record({"id": 4, "Ingredient Name": "Cane Sugar", "Score": "30"})
        assert row == ScoreRow("Cane Sugar", 30.0)

    def test_missing_column(self):
        with pytest.raises(KeyError):
            ScoreRow.from_record({"name": "Cane Sugar"})


# ── Supabase ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestSupabaseScoreTable:
    async def test_exact_query_first(self):
        session = make_session(payload=[{"Ingredient Name": "Sugar", "Score": 20}])
        table = SupabaseScoreTable("https://proj.supabase.co/", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            rows = await table.candidates(" Sugar ")
        assert rows == [ScoreRow("Sugar", 20.0)]
        session.get.assert_called_once()
        args, kwargs = session.get.call_args
        assert args[0] == "https://proj.supabase.co/rest/v1/ingredients"
        assert kwargs["params"]["Ingredient Name"] == "ilike.Sugar"
        assert kwargs["params"]["select"] == "*"
        assert "limit" not in kwargs["params"]
        assert kwargs["headers"]["apikey"] == "anon-key"

    async def test_contains_query_when_no_exact_row(self):
        session = make_session()
        session.get = MagicMock(side_effect=[
            make_response(payload=[]),
            make_response(payload=[{"Ingredient Name": "Cane Sugar", "Score": 30}]),
        ])
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key", limit=10)
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            rows = await table.candidates("sugar")
        assert rows == [ScoreRow("Cane Sugar", 30.0)]
        params = session.get.call_args_list[1].kwargs["params"]
        assert params["Ingredient Name"] == "ilike.%sugar%"
        assert params["order"] == '"Ingredient Name".asc'
        assert params["limit"] == "10"

    async def test_wildcard_lookalike_is_not_exact(self):
        session = make_session()
        session.get = MagicMock(side_effect=[
            make_response(payload=[{"Ingredient Name": "Salt", "Score": 70}]),
            make_response(payload=[]),
        ])
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            assert await table.candidates("s_lt") == []
        assert session.get.call_count == 2

    async def test_wildcards_stripped(self):
        session = make_session(payload=[])
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            await table.candidates("100% juice*")
        assert session.get.call_args.kwargs["params"]["Ingredient Name"] == "ilike.%100 juice%"

    async def test_blank_ingredient_skips_request(self):
        session = make_session(payload=[])
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            assert await table.candidates("   ") == []
            assert await table.candidates("%*") == []
        session.get.assert_not_called()

    async def test_malformed_rows_skipped(self):
        session = make_session(payload=[
            {"Ingredient Name": "Sea Salt", "Score": 70},
            {"Ingredient Name": "Mystery"},
            {"Ingredient Name": "Dust", "Score": "n/a"},
        ])
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            rows = await table.candidates("salt")
        assert rows == [ScoreRow("Sea Salt", 70.0)]

    async def test_http_error(self):
        session = make_session(status=401, text="JWT expired")
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            with pytest.raises(ServiceUnavailableError, match="401"):
                await table.candidates("salt")

    async def test_transport_error(self):
        session = make_session()
        session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        table = SupabaseScoreTable("https://proj.supabase.co", "anon-key")
        with patch("score_backends.supabase_backend.aiohttp.ClientSession", return_value=session):
            with pytest.raises(ServiceUnavailableError):
                await table.candidates("salt")


# ── SQLite ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestSQLiteScoreTable:
    async def test_setup_seeds_from_csv(self, scores_csv):
        table = SQLiteScoreTable()
        await table.setup(str(scores_csv))
        assert await db.count_scores() == 3

    async def test_seed_only_when_empty(self, scores_csv):
        await db.init_db()
        await db.upsert_scores([("Palm Oil", 10)])
        await SQLiteScoreTable().setup(str(scores_csv))
        assert await db.count_scores() == 1

    async def test_candidates_substring_case_insensitive(self, scores_csv):
        table = SQLiteScoreTable()
        await table.setup(str(scores_csv))
        assert await table.candidates("SUGAR") == [ScoreRow("Cane Sugar", 30.0)]
        assert await table.candidates("unobtainium") == []

    async def test_lazy_setup(self):
        table = SQLiteScoreTable()
        assert await table.candidates("salt") == []

    async def test_limit(self):
        await db.init_db()
        await db.upsert_scores([(f"Salt {i}", i) for i in range(10)])
        assert len(await SQLiteScoreTable(limit=3).candidates("salt")) == 3

    async def test_exact_match_beyond_limit(self):
        await db.init_db()
        await db.upsert_scores([(f"Sea Salt {i:02d}", 90) for i in range(30)])
        await db.upsert_scores([("Salt", 10)])
        report = await SustainabilityScorer(SQLiteScoreTable()).score(["salt"])
        assert report.records[0].matched_with == "Salt"
        assert report.average_score == 10
