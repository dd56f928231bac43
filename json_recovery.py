"""
json_recovery.py — turn an unreliable LLM completion into a StructuredDocument.

Three tiers, each tried only when the previous one failed:

  1. strict     json.loads() of the whole (fence-stripped) completion  → PARSED
  2. recovered  widest {...} span, run through repair_json(), parsed   → RECOVERED
  3. defaulted  fixed, fully populated default document               → DEFAULTED

parse_document() is total: it returns for every input string and never raises.
A malformed completion degrades the comparison; it must not fail the analysis.

repair_json() is a pure text → text function so its heuristics can be tested
on their own against known-bad model output.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional

from models import PRICE_UNAVAILABLE, ParseOutcome, ProductDescriptor, StructuredDocument

logger = logging.getLogger(__name__)

# ── Regexes ───────────────────────────────────────────────────────────────────

_FENCE_OPEN_RE   = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE  = re.compile(r"\s*```\s*$")
_OBJECT_SPAN_RE  = re.compile(r"\{[\s\S]*\}")                 # greedy → widest span
_STRING_RE       = re.compile(r'"(?:[^"\\]|\\.)*"')
_SINGLE_STR_RE   = re.compile(r"'((?:[^'\\]|\\.)*)'")
_TRAILING_RE     = re.compile(r",\s*([}\]])")
_BARE_KEY_RE     = re.compile(r"([{,]\s*)([A-Za-z_][\w\-]*)(\s*:)")
_LINE_COMMENT_RE = re.compile(r"^\s*//.*$", re.MULTILINE)
_PY_LITERALS     = {"True": "true", "False": "false", "None": "null"}
_PY_LITERAL_RE   = re.compile(r"\b(True|False|None)\b")

_SMART_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}


# ── Default document (tier 3) ────────────────────────────────────────────────

DEFAULT_ORIGINAL_SCORE    = 40
DEFAULT_ALTERNATIVE_SCORE = 85

_DEFAULT_METRICS = [
    {"name": "Carbon Footprint",  "original": 40, "alternative": 85, "label": "kg CO2"},
    {"name": "Water Usage",       "original": 45, "alternative": 88, "label": "liters"},
    {"name": "Energy Efficiency", "original": 50, "alternative": 90, "label": "kWh"},
    {"name": "Recyclability",     "original": 30, "alternative": 95, "label": "percentage"},
]


def default_alternative() -> ProductDescriptor:
    return ProductDescriptor(
        name="Eco-friendly Alternative",
        brand="GreenChoice",
        price=PRICE_UNAVAILABLE,
        image="",
        sustainability_score=DEFAULT_ALTERNATIVE_SCORE,
    )


def default_document() -> StructuredDocument:
    """Fresh copy every call: callers are free to mutate what they get."""
    return StructuredDocument(
        original=ProductDescriptor(
            name="Unknown Product",
            brand="Unknown Brand",
            price=PRICE_UNAVAILABLE,
            image="",
            sustainability_score=DEFAULT_ORIGINAL_SCORE,
        ),
        alternatives=[default_alternative()],
        metrics=[dict(m) for m in _DEFAULT_METRICS],
    )


# ── Text surgery ──────────────────────────────────────────────────────────────

def strip_fences(text: str) -> str:
    """Remove a ```json … ``` wrapper if present."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text, count=1)
        text = _FENCE_CLOSE_RE.sub("", text)
    return text.strip()


def extract_object_span(text: str) -> Optional[str]:
    """Widest `{ … }` span (first '{' to last '}'), or None."""
    m = _OBJECT_SPAN_RE.search(text or "")
    return m.group(0) if m else None


def _escape_stray_quotes(text: str) -> str:
    """
    Walk the text once, tracking string state.
    A '"' inside a string only closes it when the next non-space character is
    structural (, } ] :) or end of text; otherwise it is escaped. Raw newlines
    inside strings are escaped too.
    """
    out: list[str] = []
    in_string = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
        elif ch == "\\" and i + 1 < n:
            out.append(text[i:i + 2])
            i += 1
        elif ch == '"':
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j >= n or text[j] in ",}]:":
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            pass
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _outside_strings(text: str, fix: Callable[[str], str]) -> str:
    """Apply `fix` to every segment that is not a JSON string literal."""
    parts: list[str] = []
    pos = 0
    for m in _STRING_RE.finditer(text):
        parts.append(fix(text[pos:m.start()]))
        parts.append(m.group(0))
        pos = m.end()
    parts.append(fix(text[pos:]))
    return "".join(parts)


def _fix_structure(segment: str) -> str:
    segment = _TRAILING_RE.sub(r"\1", segment)
    segment = _BARE_KEY_RE.sub(r'\1"\2"\3', segment)
    return _PY_LITERAL_RE.sub(lambda m: _PY_LITERALS[m.group(1)], segment)


def repair_json(text: str) -> str:
    """
    Best-effort syntactic repair of near-JSON model output:
      • code fences and whole-line // comments removed
      • curly quotes straightened; single-quoted strings → double-quoted
        (only when the text has no double quotes at all)
      • stray quotes and raw newlines inside strings escaped
      • trailing commas before } or ] removed
      • bare property names quoted; Python True/False/None → JSON
    Never raises; output is not guaranteed to be valid JSON.
    """
    text = strip_fences(text)
    for smart, plain in _SMART_QUOTES.items():
        text = text.replace(smart, plain)
    text = _LINE_COMMENT_RE.sub("", text)
    if '"' not in text:
        text = _SINGLE_STR_RE.sub(lambda m: json.dumps(m.group(1).replace("\\'", "'")), text)
    text = _escape_stray_quotes(text)
    # Repeat: removing one trailing comma can expose another (",]," chains)
    for _ in range(3):
        fixed = _outside_strings(text, _fix_structure)
        if fixed == text:
            break
        text = fixed
    return text


# ── Validation ────────────────────────────────────────────────────────────────

def _metric_entries(raw: Any) -> list[dict]:
    """Accept a list of metric dicts or a {name: {...}} mapping."""
    if isinstance(raw, dict):
        entries = []
        for name, value in raw.items():
            if isinstance(value, dict):
                entries.append({"name": name, **value})
        return entries
    if isinstance(raw, list):
        return [m for m in raw if isinstance(m, dict)]
    return []


def to_document(data: Any) -> Optional[StructuredDocument]:
    """
    Validate a decoded JSON value. Returns None when it is not a usable
    comparison object (the tier then counts as failed).
    """
    if not isinstance(data, dict):
        return None

    original = data.get("original") or data.get("product")
    if not isinstance(original, dict):
        if "name" not in data:
            return None
        original = data

    raw_alts = data.get("alternatives")
    if isinstance(raw_alts, dict):
        raw_alts = [raw_alts]
    elif raw_alts is None and isinstance(data.get("alternative"), dict):
        raw_alts = [data["alternative"]]
    alternatives = [
        ProductDescriptor.from_dict(a) for a in (raw_alts or []) if isinstance(a, dict)
    ]

    return StructuredDocument(
        original=ProductDescriptor.from_dict(original),
        alternatives=alternatives or [default_alternative()],
        metrics=_metric_entries(data.get("metrics", data.get("comparison"))),
    )


# ── Public entry point ────────────────────────────────────────────────────────

def parse_document(text: Optional[str]) -> tuple[StructuredDocument, ParseOutcome]:
    text = text or ""

    try:
        doc = to_document(json.loads(strip_fences(text)))
        if doc is not None:
            return doc, ParseOutcome.PARSED
    except Exception as exc:
        logger.debug("Strict JSON parse failed: %s", exc)

    span = extract_object_span(text)
    if span:
        try:
            doc = to_document(json.loads(repair_json(span)))
            if doc is not None:
                logger.info("Recovered JSON document from malformed completion")
                return doc, ParseOutcome.RECOVERED
        except Exception as exc:
            logger.debug("Repaired JSON parse failed: %s", exc)

    logger.warning("Falling back to default document; completion was: %s", text[:300])
    return default_document(), ParseOutcome.DEFAULTED
