"""
Central configuration — reads from .env file.

Module attributes are the raw settings; the pipeline never reads them directly.
Instead `PipelineConfig.from_env()` takes a snapshot that is passed into
AnalysisPipeline, so tests (and a second pipeline) can run with different
settings without touching module state.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()


def _float_or_none(raw: Optional[str]) -> Optional[float]:
    raw = (raw or "").strip()
    return float(raw) if raw else None


# ── OCR / LLM provider ────────────────────────────────────────────────────────
# groq      → Groq OpenAI-compatible API (default)
# openai    → OpenAI
# anthropic → Anthropic Messages API
LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "groq").strip().lower()

# Supabase function secrets may store the key under a lowercase "groq" name
GROQ_API_KEY: Optional[str]      = os.getenv("GROQ_API_KEY") or os.getenv("groq")
OPENAI_API_KEY: Optional[str]    = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY: Optional[str] = os.getenv("ANTHROPIC_API_KEY")

# Empty → provider default (see providers/manager.py)
OCR_MODEL: Optional[str]          = os.getenv("OCR_MODEL") or None
ALTERNATIVES_MODEL: Optional[str] = os.getenv("ALTERNATIVES_MODEL") or None
LLM_MAX_TOKENS: int               = int(os.getenv("LLM_MAX_TOKENS", "1024"))

# Seconds. Unset → no deadline (a stalled provider stalls the whole analysis)
LLM_TIMEOUT: Optional[float] = _float_or_none(os.getenv("LLM_TIMEOUT"))

# ── Supabase (storage + ingredient table) ─────────────────────────────────────
SUPABASE_URL: Optional[str] = (os.getenv("SUPABASE_URL", "").strip().rstrip("/") or None)
SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY")

STORAGE_BUCKET: str    = os.getenv("STORAGE_BUCKET", "product-images")
BUCKET_SIZE_LIMIT: int = int(os.getenv("BUCKET_SIZE_LIMIT", str(5 * 1024 * 1024)))   # bytes
# false → skip the upload and hand the data URI straight to the provider
STORAGE_ENABLED: bool  = os.getenv("STORAGE_ENABLED", "true").lower() == "true"

# ── Ingredient score table ────────────────────────────────────────────────────
# supabase → PostgREST table on SUPABASE_URL
# sqlite   → local table in DATA_DIR (seed it from SCORES_CSV)
SCORE_BACKEND: str    = os.getenv("SCORE_BACKEND", "supabase").strip().lower()
INGREDIENT_TABLE: str = os.getenv("INGREDIENT_TABLE", "ingredients")
SCORES_CSV: Optional[str] = os.getenv("SCORES_CSV") or None

DATA_DIR: Path = Path(os.getenv("DATA_DIR", "data"))

# ── HTTP server ───────────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8080"))


_PROVIDER_KEYS = {
    "groq":      "GROQ_API_KEY",
    "openai":    "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit settings snapshot handed to the pipeline constructor."""
    llm_provider: str = "groq"
    llm_api_key: Optional[str] = None
    ocr_model: Optional[str] = None
    alternatives_model: Optional[str] = None
    max_tokens: int = 1024
    timeout: Optional[float] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    storage_bucket: str = "product-images"
    bucket_size_limit: int = 5 * 1024 * 1024
    storage_enabled: bool = True
    score_backend: str = "supabase"
    ingredient_table: str = "ingredients"

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        key_attr = _PROVIDER_KEYS.get(LLM_PROVIDER, "GROQ_API_KEY")
        return cls(
            llm_provider=LLM_PROVIDER,
            llm_api_key=globals()[key_attr],
            ocr_model=OCR_MODEL,
            alternatives_model=ALTERNATIVES_MODEL,
            max_tokens=LLM_MAX_TOKENS,
            timeout=LLM_TIMEOUT,
            supabase_url=SUPABASE_URL,
            supabase_key=SUPABASE_KEY,
            storage_bucket=STORAGE_BUCKET,
            bucket_size_limit=BUCKET_SIZE_LIMIT,
            storage_enabled=STORAGE_ENABLED,
            score_backend=SCORE_BACKEND,
            ingredient_table=INGREDIENT_TABLE,
        )

    @property
    def uses_supabase(self) -> bool:
        return self.storage_enabled or self.score_backend == "supabase"

    def validate(self) -> None:
        """Raise ConfigurationError for anything that would fail on first use."""
        if self.llm_provider not in _PROVIDER_KEYS:
            raise ConfigurationError(
                f"LLM_PROVIDER={self.llm_provider!r} is not supported "
                f"(choose from: {', '.join(_PROVIDER_KEYS)})."
            )
        if not self.llm_api_key:
            raise ConfigurationError(
                f"{_PROVIDER_KEYS[self.llm_provider]} is not configured. "
                "Set it in the environment or .env file."
            )
        if self.score_backend not in ("supabase", "sqlite"):
            raise ConfigurationError(f"SCORE_BACKEND={self.score_backend!r} is not supported.")
        if self.uses_supabase and not (self.supabase_url and self.supabase_key):
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_KEY are required for storage and the "
                "ingredient table (or set STORAGE_ENABLED=false and SCORE_BACKEND=sqlite)."
            )
