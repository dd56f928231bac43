"""
Shared pytest fixtures.

Every test that touches the local score table gets a clean temporary
DATA_DIR via the `tmp_data_dir` fixture so tests are fully isolated from
each other and from the real scores.db.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """
    Redirect DATA_DIR to a fresh tmp directory for every test.
    This gives each test a clean SQLite file and prevents cross-test pollution.
    """
    data = tmp_path / "data"
    data.mkdir()
    monkeypatch.setenv("DATA_DIR", str(data))

    # Patch the module-level DB_PATH that was already computed at import time
    import database
    monkeypatch.setattr(database, "DB_PATH", str(data / "scores.db"))
    monkeypatch.setattr(database, "_DATA_DIR", data)

    # Also reset the internal lock so tests don't share state
    import asyncio
    monkeypatch.setattr(database, "_lock", asyncio.Lock())

    yield data


@pytest.fixture
def pipeline_config():
    """A valid, fully offline configuration (no storage, local score table)."""
    from config import PipelineConfig
    return PipelineConfig(
        llm_provider="groq",
        llm_api_key="gsk-test",
        storage_enabled=False,
        score_backend="sqlite",
    )
