"""
database.py — async SQLite persistence via aiosqlite.

Tables:
  ingredient_scores — local copy of the ingredient → sustainability score table
                      (same content as the hosted "Ingredient Name"/"Score" table)

Used by score_backends/sqlite_backend.py when SCORE_BACKEND=sqlite.
The DB file is created automatically on first run.
"""
from __future__ import annotations

import asyncio
import csv
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import aiosqlite

logger = logging.getLogger(__name__)

# Store the DB in a dedicated data/ directory so Docker volume mounts work
# correctly (mount ./data:/app/data) and the file survives container restarts.
_DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "scores.db")
_lock = asyncio.Lock()          # serialise schema creation and bulk imports

# CSV export of the hosted table uses these headers
CSV_NAME_COLUMN  = "Ingredient Name"
CSV_SCORE_COLUMN = "Score"


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ingredient_scores (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    ingredient_name TEXT    NOT NULL UNIQUE COLLATE NOCASE,
    score           REAL    NOT NULL,
    updated_at      TEXT    NOT NULL
);
"""


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


# ── Writes ────────────────────────────────────────────────────────────────────

async def upsert_scores(rows: Iterable[tuple[str, float]]) -> int:
    """
    Insert or update (name, score) pairs. Names are matched case-insensitively.
    Returns the number of rows written; blank names are skipped.
    """
    now = datetime.now(timezone.utc).isoformat()
    clean = [(name.strip(), float(score), now) for name, score in rows if name and name.strip()]
    if not clean:
        return 0
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executemany(
                """INSERT INTO ingredient_scores (ingredient_name, score, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(ingredient_name) DO UPDATE SET
                     score=excluded.score,
                     updated_at=excluded.updated_at""",
                clean,
            )
            await db.commit()
    return len(clean)


def read_scores_csv(path: str | Path) -> list[tuple[str, float]]:
    """
    Read an export of the hosted table ("Ingredient Name", "Score" columns).
    Rows with a missing name or non-numeric score are skipped with a warning.
    """
    rows: list[tuple[str, float]] = []
    with open(path, newline="", encoding="utf-8-sig") as fh:
        for line_no, record in enumerate(csv.DictReader(fh), start=2):
            name  = (record.get(CSV_NAME_COLUMN) or "").strip()
            raw   = (record.get(CSV_SCORE_COLUMN) or "").strip()
            try:
                rows.append((name, float(raw)))
            except ValueError:
                logger.warning("%s:%d skipped — bad score %r for %r", path, line_no, raw, name)
    return rows


async def import_csv(path: str | Path) -> int:
    """Load a CSV export into the local table. Returns rows written."""
    written = await upsert_scores(read_scores_csv(path))
    logger.info("Imported %d ingredient scores from %s", written, path)
    return written


# ── Reads ─────────────────────────────────────────────────────────────────────

async def find_candidates(ingredient: str, limit: int = 25) -> list[tuple[str, float]]:
    """
    Rows whose name contains `ingredient` (case-insensitive), best first:
    exact name, then shortest name, then alphabetical. The limit applies
    after ranking so an exact row is never cut off.
    instr() instead of LIKE so '%' and '_' in OCR text are matched literally.
    """
    needle = ingredient.strip().lower()
    if not needle:
        return []
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            """SELECT ingredient_name, score FROM ingredient_scores
               WHERE instr(lower(ingredient_name), ?) > 0
               ORDER BY lower(ingredient_name) = ? DESC,
                        length(ingredient_name),
                        lower(ingredient_name)
               LIMIT ?""",
            (needle, needle, limit),
        ) as cur:
            rows = await cur.fetchall()
    return [(r[0], r[1]) for r in rows]


async def count_scores() -> int:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT COUNT(*) FROM ingredient_scores") as cur:
            row = await cur.fetchone()
            return row[0] if row else 0
