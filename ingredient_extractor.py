"""
ingredient_extractor.py — ordered ingredient strings from raw OCR/LLM text.

Priority order:
  1. an explicit bracketed array anywhere in the text   ["water", "sugar"]
  2. an "ingredient" keyword section                    Ingredients: water, sugar
                                                        - salt
  3. plain comma / newline split of the whole text

Tokens shorter than 2 characters, or mentioning "ingredient" / "list", are
extraction artifacts (headers, stray glyphs) and are dropped.

extract_ingredients() is a generator: iterate it once.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

_ARRAY_RE   = re.compile(r"\[([^\[\]]+)\]")
# digits+period ("1." / "2)"), bullet glyphs, dashes
_MARKER_RE  = re.compile(r"^\s*(?:\d+[.)]\s+|\d+[.)](?=\D)|[•·●◦‣▪○■*\-–—]+\s*)")
_SECTION_RE = re.compile(r"^[^,]{2,60}:\s*$")      # "Nutrition Facts:" ends the section
_EDGE_CHARS = " \t*_\"'`"
_TAIL_CHARS = ".;:"

_ARTIFACT_WORDS = ("ingredient", "list")


def _clean(token: str) -> str:
    prev = None
    while token != prev:
        prev = token
        token = token.strip(_EDGE_CHARS).rstrip(_TAIL_CHARS)
    return token


def _is_artifact(token: str) -> bool:
    lower = token.lower()
    return len(token) < 2 or any(w in lower for w in _ARTIFACT_WORDS)


def split_top_level(text: str) -> list[str]:
    """Split on commas and newlines, ignoring commas inside (…) or […]."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth:
            depth -= 1
        if ch == "\n" or (ch == "," and depth == 0):
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _filtered(tokens: Iterable[str]) -> Iterator[str]:
    for token in tokens:
        token = _clean(token)
        if token and not _is_artifact(token):
            yield token


def _from_array(text: str) -> list[str] | None:
    m = _ARRAY_RE.search(text)
    if not m:
        return None
    try:
        items = json.loads(m.group(0))
    except ValueError:
        # "[water, sugar]" is an array; "[see back]" is just brackets
        if "," not in m.group(1):
            return None
        items = split_top_level(m.group(1))
    if not isinstance(items, list):
        return None
    items = [str(item).strip() for item in items if isinstance(item, (str, int, float))]
    return items or None


def _from_keyword_section(lines: list[str]) -> list[str] | None:
    for idx, line in enumerate(lines):
        lower = line.lower()
        pos = lower.find("ingredient")
        if pos == -1:
            continue

        tokens: list[str] = []
        after = line[pos:]
        if ":" in after:
            remainder = after.split(":", 1)[1]
        else:
            remainder = re.sub(r"^ingredients?(?:\s+list)?", "", after, flags=re.IGNORECASE)
        tokens.extend(split_top_level(remainder))

        for follow in lines[idx + 1:]:
            follow = follow.strip()
            if not follow:
                continue
            if _SECTION_RE.match(follow) and "ingredient" not in follow.lower():
                break
            follow = _MARKER_RE.sub("", follow, count=1)
            tokens.extend(split_top_level(follow))
        return tokens
    return None


def extract_ingredients(text: str) -> Iterator[str]:
    text = text or ""

    tokens = _from_array(text)
    if tokens is not None:
        logger.debug("Ingredients taken from bracketed array")
    else:
        tokens = _from_keyword_section(text.splitlines())
        if tokens is not None:
            logger.debug("Ingredients taken from keyword section")
        else:
            tokens = split_top_level(text)

    yield from _filtered(tokens)
