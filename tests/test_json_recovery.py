"""
Tests for json_recovery.py.

Covers:
  - parse_document(): strict parse, fenced JSON, recovery from known-bad
    model output, fallback to the default document
  - parse_document() is total: never raises, always returns a usable document
  - repair_json(): each repair heuristic on its own
  - to_document(): accepted shapes (alternatives as dict / "alternative",
    metrics as list / mapping, flat product object)
  - default_document(): fixed scores, fresh copy every call
"""
from __future__ import annotations

import json

import pytest

from json_recovery import (
    default_document,
    extract_object_span,
    parse_document,
    repair_json,
    strip_fences,
    to_document,
)
from models import PRICE_UNAVAILABLE, ParseOutcome

VALID = json.dumps({
    "original": {"name": "Dish Soap", "brand": "Acme", "price": "$3.99", "sustainabilityScore": 45},
    "alternatives": [
        {"name": "Refill Soap", "brand": "Leaf", "price": "$4.50", "sustainabilityScore": 82},
        {"name": "Soap Bar", "brand": "Bloom", "sustainabilityScore": 88},
    ],
    "metrics": [{"name": "Carbon Footprint", "original": 30, "alternative": 70}],
})


# ── parse_document: strict tier ───────────────────────────────────────────────

class TestStrictParse:
    def test_valid_json_is_parsed(self):
        doc, outcome = parse_document(VALID)
        assert outcome is ParseOutcome.PARSED
        assert doc.original.name == "Dish Soap"
        assert doc.original.sustainability_score == 45
        assert [a.name for a in doc.alternatives] == ["Refill Soap", "Soap Bar"]
        assert doc.metrics[0]["name"] == "Carbon Footprint"

    def test_markdown_fenced_json_is_parsed(self):
        doc, outcome = parse_document(f"```json\n{VALID}\n```")
        assert outcome is ParseOutcome.PARSED
        assert doc.original.brand == "Acme"

    def test_missing_price_gets_sentinel(self):
        doc, _ = parse_document(VALID)
        assert doc.alternatives[1].price == PRICE_UNAVAILABLE


# ── parse_document: recovery tier ─────────────────────────────────────────────

class TestRecoveredParse:
    def test_prose_prefix_and_trailing_comma(self):
        text = (
            "Sure! Here's the data: "
            '{"original":{"name":"Dish Soap","brand":"Acme","sustainabilityScore":45},'
            '"alternatives":[{"name":"Refill Soap","brand":"Leaf","sustainabilityScore":82}] ,}'
        )
        doc, outcome = parse_document(text)
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.name == "Dish Soap"
        assert doc.alternatives[0].name == "Refill Soap"

    def test_prose_suffix(self):
        doc, outcome = parse_document(VALID + "\n\nLet me know if you need anything else!")
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.name == "Dish Soap"

    def test_unescaped_quotes_inside_value(self):
        text = '{"original": {"name": "The "Best" Soap", "brand": "Acme"}, "alternatives": []}'
        doc, outcome = parse_document(text)
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.name == 'The "Best" Soap'

    def test_single_quotes_and_bare_keys(self):
        text = "{original: {name: 'Dish Soap', brand: 'Acme'}, alternatives: [{name: 'Soap Bar'}]}"
        doc, outcome = parse_document(text)
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.name == "Dish Soap"
        assert doc.alternatives[0].name == "Soap Bar"

    def test_python_literals(self):
        text = '{"original": {"name": "Dish Soap", "price": None, "organic": True}, "alternatives": [],}'
        doc, outcome = parse_document(text)
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.price == PRICE_UNAVAILABLE

    def test_line_comments(self):
        text = '{\n  // the scanned product\n  "original": {"name": "Dish Soap"},\n  "alternatives": []\n}'
        doc, outcome = parse_document(text)
        assert outcome is ParseOutcome.RECOVERED
        assert doc.original.name == "Dish Soap"


# ── parse_document: default tier ──────────────────────────────────────────────

class TestDefaulted:
    def test_prose_only_gives_default_document(self):
        doc, outcome = parse_document("I'm sorry, I can't identify alternatives for this product.")
        assert outcome is ParseOutcome.DEFAULTED
        assert doc.original.sustainability_score == 40
        assert len(doc.alternatives) == 1
        assert doc.alternatives[0].sustainability_score == 85
        assert len(doc.metrics) == 4

    def test_json_without_product_gives_default(self):
        _, outcome = parse_document('{"error": "rate limited"}')
        assert outcome is ParseOutcome.DEFAULTED


class TestTotality:
    @pytest.mark.parametrize("text", [
        None,
        "",
        "   ",
        "{",
        "}{",
        "[1, 2, 3]",
        "null",
        "{{{{",
        '{"original": ',
        '{"original": "just a string"}',
        "```\n```",
        "\x00\x01",
        '{"original": {"name": "A"}, "alternatives": "none"}',
    ])
    def test_never_raises(self, text):
        doc, outcome = parse_document(text)
        assert isinstance(outcome, ParseOutcome)
        assert doc.original.name
        assert doc.alternatives


# ── repair_json ───────────────────────────────────────────────────────────────

class TestRepairJson:
    def test_trailing_commas(self):
        assert json.loads(repair_json('{"a": [1, 2,], }')) == {"a": [1, 2]}

    def test_commas_inside_strings_untouched(self):
        assert json.loads(repair_json('{"note": "a ,}", "b": 1,}')) == {"note": "a ,}", "b": 1}

    def test_raw_newline_inside_string(self):
        assert json.loads(repair_json('{"name": "line one\nline two"}')) == {"name": "line one\nline two"}

    def test_smart_quotes(self):
        assert json.loads(repair_json("{“name”: “Soap”}")) == {"name": "Soap"}

    def test_bare_keys(self):
        assert json.loads(repair_json('{name: "Soap", score_2: 5}')) == {"name": "Soap", "score_2": 5}

    def test_python_literals_outside_strings_only(self):
        repaired = repair_json('{"a": True, "b": None, "c": "True story"}')
        assert json.loads(repaired) == {"a": True, "b": None, "c": "True story"}

    def test_valid_json_unchanged(self):
        assert json.loads(repair_json(VALID)) == json.loads(VALID)

    def test_never_raises_on_garbage(self):
        assert isinstance(repair_json('"""\\'), str)


class TestTextHelpers:
    def test_strip_fences(self):
        assert strip_fences("```json\n{}\n```") == "{}"
        assert strip_fences("{}") == "{}"

    def test_widest_object_span(self):
        assert extract_object_span('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'

    def test_no_span(self):
        assert extract_object_span("no braces here") is None


# ── to_document ───────────────────────────────────────────────────────────────

class TestToDocument:
    def test_not_a_dict(self):
        assert to_document(["a"]) is None

    def test_flat_product_object(self):
        doc = to_document({"name": "Dish Soap", "price": 3.5})
        assert doc.original.name == "Dish Soap"
        assert doc.original.price == "$3.50"
        assert doc.alternatives[0].name == "Eco-friendly Alternative"

    def test_single_alternative_object(self):
        doc = to_document({"original": {"name": "A"}, "alternative": {"name": "B"}})
        assert [a.name for a in doc.alternatives] == ["B"]

    def test_alternatives_as_dict(self):
        doc = to_document({"original": {"name": "A"}, "alternatives": {"name": "B"}})
        assert [a.name for a in doc.alternatives] == ["B"]

    def test_metrics_mapping(self):
        doc = to_document({
            "original": {"name": "A"},
            "metrics": {"Water Usage": {"original": 30, "alternative": 70}, "junk": 5},
        })
        assert doc.metrics == [{"name": "Water Usage", "original": 30, "alternative": 70}]

    def test_comparison_key_accepted(self):
        doc = to_document({"original": {"name": "A"}, "comparison": [{"name": "Recyclability"}]})
        assert doc.metrics == [{"name": "Recyclability"}]

    def test_out_of_range_score_clamped(self):
        doc = to_document({"original": {"name": "A", "sustainabilityScore": 140}})
        assert doc.original.sustainability_score == 100


class TestDefaultDocument:
    def test_fresh_copy_each_call(self):
        first = default_document()
        first.metrics.clear()
        first.alternatives.clear()
        second = default_document()
        assert len(second.metrics) == 4
        assert len(second.alternatives) == 1
