"""
Provider Manager — builds the configured OCR/LLM provider.

  LLM_PROVIDER=groq       → GroqProvider      (default)
  LLM_PROVIDER=openai     → OpenAIProvider
  LLM_PROVIDER=anthropic  → AnthropicProvider

SDK modules are imported lazily, one provider at a time.
"""
from __future__ import annotations

import logging

from config import PipelineConfig
from errors import ConfigurationError
from providers.base import TextProvider

logger = logging.getLogger(__name__)


def build_provider(cfg: PipelineConfig) -> TextProvider:
    if not cfg.llm_api_key:
        raise ConfigurationError(f"No API key configured for LLM provider {cfg.llm_provider!r}.")

    kwargs = dict(
        api_key=cfg.llm_api_key,
        model=cfg.ocr_model,
        max_tokens=cfg.max_tokens,
        timeout=cfg.timeout,
    )

    if cfg.llm_provider == "groq":
        from providers.groq_provider import GroqProvider
        provider: TextProvider = GroqProvider(**kwargs)
    elif cfg.llm_provider == "openai":
        from providers.openai_provider import OpenAIProvider
        provider = OpenAIProvider(**kwargs)
    elif cfg.llm_provider == "anthropic":
        from providers.anthropic_provider import AnthropicProvider
        provider = AnthropicProvider(**kwargs)
    else:
        raise ConfigurationError(f"Unknown LLM provider: {cfg.llm_provider!r}")

    logger.info("Loaded provider: %s", provider.full_name)
    return provider
