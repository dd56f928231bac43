"""
style.py — user-facing text for analysis results.

Everything a person reads (score labels, price display, failure toasts,
the plain-text comparison card) is produced here so the wording stays
consistent between the HTTP payload and the logs.
"""
from __future__ import annotations

from typing import Optional

from errors import AnalysisError, ConfigurationError, InputError, ServiceError
from models import PRICE_UNAVAILABLE, ComparisonResult, Number, round_half_up

# ── Visual constants ──────────────────────────────────────────────────────────

DIV  = "━━━━━━━━━━━━━━━━━━━━━━━━━━"
SDIV = "┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄"

# (lower bound, label), checked top-down
SCORE_LABELS = (
    (80, "Excellent"),
    (60, "Good"),
    (40, "Average"),
    (20, "Poor"),
    (0,  "Bad"),
)

DOTS = {5: "●●●●●", 4: "●●●●○", 3: "●●●○○", 2: "●●○○○", 1: "●○○○○", 0: "○○○○○"}

ANALYSIS_FAILED = "Could not analyze this product"
GENERIC_FAILURE = "Something went wrong"


# ── Scores ────────────────────────────────────────────────────────────────────

def score_label(score: Optional[Number]) -> str:
    if score is None:
        return "Unknown"
    for floor, label in SCORE_LABELS:
        if score >= floor:
            return label
    return "Bad"


def score_bar(score: Optional[Number]) -> str:
    """0–100 → five dots (one per 20 points)."""
    if score is None:
        return DOTS[0]
    return DOTS[max(0, min(5, round_half_up(score / 20)))]


def display_price(price: Optional[str]) -> str:
    if not price or price == PRICE_UNAVAILABLE:
        return "Price not available"
    return price


# ── Failures ──────────────────────────────────────────────────────────────────

def failure_message(exc: BaseException) -> str:
    """
    Short toast for a failed analysis.
    Known analysis failures get the specific wording; anything else is a bug
    and gets the generic one.
    """
    if isinstance(exc, InputError):
        return f"{ANALYSIS_FAILED}: {exc}"
    if isinstance(exc, ConfigurationError):
        return f"{ANALYSIS_FAILED}: the service is not configured"
    if isinstance(exc, ServiceError):
        return f"{ANALYSIS_FAILED}. Please try again."
    if isinstance(exc, AnalysisError):
        return ANALYSIS_FAILED
    return GENERIC_FAILURE


# ── Comparison card ───────────────────────────────────────────────────────────

def comparison_card(result: ComparisonResult) -> str:
    original    = result.original
    alternative = result.alternatives[0]
    lines = [
        "🌱 SUSTAINABILITY COMPARISON",
        DIV,
        f"{original.name} — {original.brand}",
        f"  {score_bar(original.sustainability_score)}  "
        f"{original.sustainability_score if original.sustainability_score is not None else '?'}/100 "
        f"({score_label(original.sustainability_score)})",
        f"  {display_price(original.price)}",
        "",
        f"♻️ {alternative.name} — {alternative.brand}",
        f"  {score_bar(alternative.sustainability_score)}  "
        f"{alternative.sustainability_score if alternative.sustainability_score is not None else '?'}/100 "
        f"({score_label(alternative.sustainability_score)})",
        f"  {display_price(alternative.price)}",
        SDIV,
    ]
    for m in result.metrics:
        flag = " *" if m.estimated else ""
        lines.append(f"{m.name:<18} {m.original_value:>3}% → {m.alternative_value:>3}%  ({m.unit_label}){flag}")
    if any(m.estimated for m in result.metrics):
        lines.append("* estimated from sustainability scores")
    if len(result.alternatives) > 1:
        lines.append(SDIV)
        lines.append("More options: " + ", ".join(a.name for a in result.alternatives[1:]))
    return "\n".join(lines)
