"""
models.py — domain types shared by every stage of the analysis pipeline.

All wire/JSON shapes are camelCase (matching what the web client reads);
attributes are snake_case. `to_dict()` / `from_dict()` are the only place
that mapping lives.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

Number = Union[int, float]

# Price sentinel used whenever the source gives no usable price
PRICE_UNAVAILABLE = "Not Available"


# ── Numeric helpers ────────────────────────────────────────────────────────────

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")


def to_number(value: Any) -> Optional[float]:
    """
    Coerce an LLM-supplied value to float.
    Accepts ints, floats and strings like "42", "42%", "0.42". Returns None otherwise.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:   # ints from long digit runs in LLM JSON
            return None
    elif isinstance(value, str):
        m = _NUM_RE.search(value.replace(",", ""))
        if not m:
            return None
        number = float(m.group())
    else:
        return None
    return number if math.isfinite(number) else None


def tidy(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


# ── Ingredients & scoring ──────────────────────────────────────────────────────

@dataclass
class IngredientRecord:
    """One ingredient and the lookup row it matched (if any)."""
    name: str
    score: Optional[Number] = None
    matched_with: Optional[str] = None   # "Ingredient Name" of the matched row

    def __post_init__(self) -> None:
        if (self.score is None) != (self.matched_with is None):
            raise ValueError("score and matched_with must both be set or both be None")

    @property
    def matched(self) -> bool:
        return self.score is not None

    def to_dict(self) -> dict:
        return {"name": self.name, "score": self.score, "matchedWith": self.matched_with}


@dataclass
class ScoreReport:
    records: list[IngredientRecord]
    average_score: Optional[int]
    matched: int
    total: int

    def to_dict(self) -> dict:
        return {
            "ingredientScores":   [r.to_dict() for r in self.records],
            "averageScore":       self.average_score,
            "matchedIngredients": self.matched,
            "totalIngredients":   self.total,
        }


# ── Products ───────────────────────────────────────────────────────────────────

@dataclass
class ProductDescriptor:
    name: str
    brand: str
    price: str
    image: str                                  # public URL or data URI
    sustainability_score: Optional[Number]      # 0–100, None when unknown
    category: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.price or not str(self.price).strip():
            self.price = PRICE_UNAVAILABLE
        if self.sustainability_score is not None:
            score = to_number(self.sustainability_score)
            self.sustainability_score = None if score is None else tidy(clamp(score, 0, 100))

    def to_dict(self) -> dict:
        data = {
            "name":                self.name,
            "brand":               self.brand,
            "price":               self.price,
            "image":               self.image,
            "sustainabilityScore": self.sustainability_score,
        }
        if self.category:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict, image_fallback: str = "") -> "ProductDescriptor":
        """
        Build from a duck-typed dict (LLM output or cache).
        Missing fields get sentinel values; nothing here raises for bad content.
        """
        price = data.get("price")
        if isinstance(price, (int, float)) and not isinstance(price, bool):
            amount = to_number(price)
            price = None if amount is None else f"${amount:.2f}"

        score = data.get("sustainabilityScore")
        if score is None:
            score = data.get("sustainability_score", data.get("score"))

        return cls(
            name=_text(data.get("name") or data.get("productName"), "Unknown Product"),
            brand=_text(data.get("brand"), "Unknown Brand"),
            price=_text(price, PRICE_UNAVAILABLE),
            image=_text(data.get("image"), image_fallback),
            sustainability_score=to_number(score),
            category=_text(data.get("category")) or None,
        )


# ── Comparison ─────────────────────────────────────────────────────────────────

@dataclass
class ComparisonMetric:
    name: str
    original_value: Number      # percentage 0–100
    alternative_value: Number   # percentage 0–100
    unit_label: str
    estimated: bool = False     # True → derived from scores, not supplied data

    def __post_init__(self) -> None:
        for attr in ("original_value", "alternative_value"):
            value = getattr(self, attr)
            if not 0 <= value <= 100:
                raise ValueError(f"{attr}={value} is outside 0–100")

    def to_dict(self) -> dict:
        return {
            "name":             self.name,
            "originalValue":    self.original_value,
            "alternativeValue": self.alternative_value,
            "unitLabel":        self.unit_label,
            "estimated":        self.estimated,
        }


@dataclass
class ComparisonResult:
    original: ProductDescriptor
    alternatives: list[ProductDescriptor]
    metrics: list[ComparisonMetric]

    def __post_init__(self) -> None:
        if not self.alternatives:
            raise ValueError("a comparison needs at least one alternative")

    def to_dict(self) -> dict:
        return {
            "original":     self.original.to_dict(),
            "alternatives": [a.to_dict() for a in self.alternatives],
            "metrics":      [m.to_dict() for m in self.metrics],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "ComparisonResult":
        return cls(
            original=ProductDescriptor.from_dict(data["original"]),
            alternatives=[ProductDescriptor.from_dict(a) for a in data["alternatives"]],
            metrics=[
                ComparisonMetric(
                    name=m["name"],
                    original_value=m["originalValue"],
                    alternative_value=m["alternativeValue"],
                    unit_label=m["unitLabel"],
                    estimated=bool(m.get("estimated", False)),
                )
                for m in data["metrics"]
            ],
        )

    @classmethod
    def from_json(cls, text: str) -> "ComparisonResult":
        return cls.from_dict(json.loads(text))


# ── LLM document ───────────────────────────────────────────────────────────────

class ParseOutcome(str, Enum):
    PARSED    = "parsed"      # strict json.loads succeeded
    RECOVERED = "recovered"   # needed span extraction + repair
    DEFAULTED = "defaulted"   # gave up, fixed default document


@dataclass
class StructuredDocument:
    """Validated view of the alternatives/comparison object the LLM returns."""
    original: ProductDescriptor
    alternatives: list[ProductDescriptor]
    metrics: list[dict] = field(default_factory=list)   # raw metric entries, normalised later
