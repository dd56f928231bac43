"""
comparison.py — the four-metric comparison between a product and an alternative.

Every ComparisonResult carries exactly these dimensions, in this order:

  Carbon Footprint (kg CO2) · Water Usage (liters) · Energy Efficiency (kWh) · Recyclability (percentage)

Values are percentages in [0, 100]. They come from one of two places:

  supplied  the LLM's comparison object. Models mix fractions and percentages,
            so every value goes through normalize(): 0 ≤ v < 1 is a fraction
            (0.42 → 42), 1 ≤ v ≤ 100 is kept, anything else is clamped.
  derived   no usable value was supplied. A fixed formula of the two
            sustainability scores stands in. This is a heuristic, NOT measured
            data, and the metric is marked `estimated=True` so callers can
            say so.

Missing scores default to 60 (original) and 80 (alternative); synthesis never
fails on incomplete products.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from models import (
    ComparisonMetric,
    ComparisonResult,
    Number,
    ProductDescriptor,
    clamp,
    round_half_up,
    tidy,
    to_number,
)

logger = logging.getLogger(__name__)

DEFAULT_ORIGINAL_SCORE    = 60
DEFAULT_ALTERNATIVE_SCORE = 80

# Derived-value bounds
ORIGINAL_RANGE    = (20, 100)
ALTERNATIVE_RANGE = (65, 95)


@dataclass(frozen=True)
class Dimension:
    name: str
    unit: str
    keywords: tuple[str, ...]     # any of these in a supplied metric name selects this dimension
    original_weight: float        # derived original = (100 - score) × weight
    alternative_base: int         # derived alternative = base × improvement factor


DIMENSIONS: tuple[Dimension, ...] = (
    Dimension("Carbon Footprint",  "kg CO2",     ("carbon", "co2", "emission"),      1.0, 65),
    Dimension("Water Usage",       "liters",     ("water",),                         0.9, 70),
    Dimension("Energy Efficiency", "kWh",        ("energy", "kwh", "power"),         0.8, 75),
    Dimension("Recyclability",     "percentage", ("recycl", "packaging", "waste"),   0.7, 80),
)

_ORIGINAL_KEYS    = ("originalValue", "original", "original_value", "product", "before")
_ALTERNATIVE_KEYS = ("alternativeValue", "alternative", "alternative_value", "after")


# ── Normalisation ─────────────────────────────────────────────────────────────

def normalize(value: Any) -> Optional[Number]:
    """
    Map a supplied metric value onto 0–100.
    Returns None when the value is not numeric at all.
    """
    v = to_number(value)
    if v is None:
        return None
    if 0 <= v < 1:
        return round_half_up(v * 100)
    return tidy(clamp(v, 0, 100))


def _key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def dimension_for(name: Any) -> Optional[Dimension]:
    if not isinstance(name, str):
        return None
    key = _key(name)
    for dim in DIMENSIONS:
        if any(k in key for k in dim.keywords):
            return dim
    return None


def _first(entry: dict, keys: Sequence[str]) -> Any:
    for k in keys:
        if entry.get(k) is not None:
            return entry[k]
    return None


def index_metrics(raw_metrics: Optional[Iterable[dict]]) -> dict[str, tuple[Optional[Number], Optional[Number]]]:
    """{dimension name: (original, alternative)} from supplied entries; first entry per dimension wins."""
    found: dict[str, tuple[Optional[Number], Optional[Number]]] = {}
    for entry in raw_metrics or []:
        if not isinstance(entry, dict):
            continue
        dim = dimension_for(entry.get("name") or entry.get("metric"))
        if dim is None or dim.name in found:
            continue
        found[dim.name] = (
            normalize(_first(entry, _ORIGINAL_KEYS)),
            normalize(_first(entry, _ALTERNATIVE_KEYS)),
        )
    return found


# ── Derived (heuristic) values ────────────────────────────────────────────────

def derived_values(dim: Dimension, original_score: float, alternative_score: float) -> tuple[int, int]:
    improvement = 1 + max(alternative_score - original_score, 0) / 100
    original = clamp(round_half_up((100 - original_score) * dim.original_weight), *ORIGINAL_RANGE)
    alternative = clamp(round_half_up(dim.alternative_base * improvement), *ALTERNATIVE_RANGE)
    return int(original), int(alternative)


# ── Public entry point ────────────────────────────────────────────────────────

def _score_or(product: Optional[ProductDescriptor], default: int) -> float:
    if product is None or product.sustainability_score is None:
        return default
    return float(product.sustainability_score)


def synthesize(
    original: ProductDescriptor,
    alternative: Optional[ProductDescriptor],
    raw_metrics: Optional[Iterable[dict]] = None,
    others: Sequence[ProductDescriptor] = (),
) -> ComparisonResult:
    """
    Build the ComparisonResult for `original` vs the chosen `alternative`.
    `others` are extra alternatives listed after the chosen one.
    """
    if alternative is None:
        from json_recovery import default_alternative
        alternative = others[0] if others else default_alternative()

    o_score = _score_or(original, DEFAULT_ORIGINAL_SCORE)
    a_score = _score_or(alternative, DEFAULT_ALTERNATIVE_SCORE)
    supplied = index_metrics(raw_metrics)

    metrics: list[ComparisonMetric] = []
    for dim in DIMENSIONS:
        given_o, given_a = supplied.get(dim.name, (None, None))
        derived_o, derived_a = derived_values(dim, o_score, a_score)
        metrics.append(
            ComparisonMetric(
                name=dim.name,
                original_value=derived_o if given_o is None else given_o,
                alternative_value=derived_a if given_a is None else given_a,
                unit_label=dim.unit,
                estimated=given_o is None or given_a is None,
            )
        )

    estimated = sum(m.estimated for m in metrics)
    if estimated:
        logger.info("%d of %d comparison metrics derived from scores", estimated, len(metrics))

    alternatives = [alternative] + [p for p in others if p is not alternative]
    return ComparisonResult(original=original, alternatives=alternatives, metrics=metrics)
