"""
Shared prompts and base class for all OCR/LLM text providers.

Contract (identical for every prompt):  one text in → one text out.
  extract(image_ref, instruction_prompt)  — system=instruction, user=image reference
  complete(system_prompt, user_text)      — text-only (alternative suggestions)

Providers never retry and never parse: malformed completions are the
caller's problem (see json_recovery.py).
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

# ── Prompts ────────────────────────────────────────────────────────────────────

FULL_TEXT_PROMPT = (
    "You are an OCR specialist that reads text from product images and extracts key "
    "information about the product. Focus on ingredients, product name, brand, nutrition "
    "facts, and sustainability information. Present the information in a clear, concise format."
)

INGREDIENTS_PROMPT = (
    "You are an OCR specialist. Read the product image and return ONLY the ingredients "
    "list as a JSON array of strings, in the order printed on the pack, e.g. "
    '["water", "sugar", "salt"]. No prose, no markdown.'
)

ALTERNATIVES_PROMPT = """You are a sustainability expert comparing consumer products.
Given a product and its ingredients, suggest more sustainable alternatives and return ONLY
a valid JSON object — no markdown, no prose.

JSON schema:
{
  "original": {
    "name": "product name", "brand": "brand or null", "price": "$0.00 or null",
    "sustainabilityScore": 0-100, "category": "category"
  },
  "alternatives": [
    {"name": "...", "brand": "...", "price": "...", "sustainabilityScore": 0-100, "category": "..."}
  ],
  "metrics": [
    {"name": "Carbon Footprint",  "original": 0-100, "alternative": 0-100},
    {"name": "Water Usage",       "original": 0-100, "alternative": 0-100},
    {"name": "Energy Efficiency", "original": 0-100, "alternative": 0-100},
    {"name": "Recyclability",     "original": 0-100, "alternative": 0-100}
  ]
}
Suggest 1 to 3 alternatives, most sustainable first.
"""

_REFERENCE_TEMPLATE = (
    "Please analyze this product image and extract all text information. Focus on the "
    "product name, ingredients list, and any sustainability claims or certifications. "
    "The image is provided at: {reference}"
)


def build_reference_message(image_ref: str) -> str:
    """User message that hands the image reference (URL or data URI) to the model."""
    return _REFERENCE_TEMPLATE.format(reference=image_ref)


def build_alternatives_request(
    ocr_text: str,
    ingredients: Sequence[str],
    average_score: Optional[int],
) -> str:
    score = "unknown" if average_score is None else f"{average_score}/100"
    listed = ", ".join(ingredients) if ingredients else "not found"
    return (
        f"Product label text:\n{ocr_text.strip()[:3000]}\n\n"
        f"Ingredients: {listed}\n"
        f"Ingredient-based sustainability score: {score}\n\n"
        "Return the JSON object now."
    )


# ── Abstract base ──────────────────────────────────────────────────────────────

class TextProvider(ABC):
    """Base class all OCR/LLM providers must implement."""

    name: str           # e.g. "groq"
    model_id: str       # e.g. "llama3-70b-8192"
    max_tokens: int = 1024
    timeout: Optional[float] = None     # seconds; None → no deadline

    @abstractmethod
    async def _chat(self, system_prompt: str, user_text: str, model: str) -> str:
        """One provider round-trip. Must map SDK failures to ServiceError subclasses."""
        ...

    @property
    def full_name(self) -> str:
        return f"{self.name}/{self.model_id}"

    async def extract(self, image_ref: str, instruction_prompt: str) -> str:
        """Send an image reference plus instructions; return the raw completion."""
        return await self._call(instruction_prompt, build_reference_message(image_ref))

    async def complete(self, system_prompt: str, user_text: str, model: Optional[str] = None) -> str:
        return await self._call(system_prompt, user_text, model)

    async def _call(self, system_prompt: str, user_text: str, model: Optional[str] = None) -> str:
        model = model or self.model_id
        t0 = time.monotonic()
        try:
            if self.timeout:
                text = await asyncio.wait_for(self._chat(system_prompt, user_text, model), self.timeout)
            else:
                text = await self._chat(system_prompt, user_text, model)
        except asyncio.TimeoutError as exc:
            raise ServiceUnavailableError(
                f"[{self.name}/{model}] no response within {self.timeout:g}s"
            ) from exc
        latency_ms = int((time.monotonic() - t0) * 1000)
        logger.info("[%s/%s] OK — %d chars in %dms", self.name, model, len(text), latency_ms)
        return text
