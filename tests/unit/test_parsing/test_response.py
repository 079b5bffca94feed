"""Tests for the three-tier response parser."""

from __future__ import annotations

import json

import pytest

from sessionlens.domain.models import HeuristicAnalysis, ProductivityMetrics, StructuredAnalysis, TextFallbackAnalysis
from sessionlens.parsing.response import (
    APPROXIMATE_SCORE_NOTE,
    extract_json_object,
    extract_summary,
    is_usable_response,
    parse_response,
    try_structured,
    try_text_summary,
)


@pytest.fixture
def fallback() -> HeuristicAnalysis:
    return HeuristicAnalysis(
        summary="heuristic",
        productivity_metrics=ProductivityMetrics(focus_score=0.5),
    )


class TestExtractJsonObject:
    def test_ignores_braces_inside_strings(self) -> None:
        text = 'prefix {"a": "}{", "b": {"c": 1}} trailing }'
        assert extract_json_object(text) == '{"a": "}{", "b": {"c": 1}}'

    def test_skips_unclosed_opening_brace(self) -> None:
        assert extract_json_object('bad { start then {"x": 1}') == '{"x": 1}'
        assert extract_json_object('{"x": 1} and { never closed') == '{"x": 1}'

    def test_no_object(self) -> None:
        assert extract_json_object("just prose") is None


class TestTryStructured:
    def test_embedded_object(self, structured_response: str) -> None:
        result = try_structured(structured_response)
        assert isinstance(result, StructuredAnalysis)
        assert result.source == "ai"
        assert result.productivity_metrics.focus_score == pytest.approx(0.82)
        assert result.applications == ["VS Code", "Terminal"]
        assert result.work_completed == ["Invoice splitter"]
        assert result.time_breakdown == {"coding": 70.0, "testing": 30.0}

    def test_nested_legacy_layout(self) -> None:
        raw = json.dumps({
            "summary": {"reportReadySummary": "Shipped the export", "workCompleted": ["CSV export"]},
            "productivityMetrics": {"focusScore": 75},
            "recognition": {"accomplishments": ["Closed three tickets"]},
            "automation": {"suggestions": ["Script the release notes"]},
        })
        result = try_structured(raw)
        assert result is not None
        assert result.summary == "Shipped the export"
        assert result.productivity_metrics.focus_score == pytest.approx(0.75)
        assert result.insights == ["Closed three tickets"]
        assert result.recommendations == ["Script the release notes"]
        assert result.work_completed == ["CSV export"]

    def test_invalid_escapes_are_repaired(self) -> None:
        raw = r'{"summary": "saved to C:\Users\me", "productivityMetrics": {"focusScore": 0.5}}'
        result = try_structured(raw)
        assert result is not None
        assert result.summary == "saved to C:\\Users\\me"

    def test_missing_metrics_is_rejected(self) -> None:
        assert try_structured('{"summary": "no metrics here"}') is None

    @pytest.mark.parametrize("raw", ["", "{not json", "[1, 2, 3]", "plain prose"])
    def test_unusable_input_returns_none(self, raw: str) -> None:
        assert try_structured(raw) is None


class TestTextSummary:
    def test_summary_line_and_score(self) -> None:
        raw = "## Overview: Wrote the migration script\nProductivity score: 73"
        result = try_text_summary(raw)
        assert isinstance(result, TextFallbackAnalysis)
        assert result.summary == "Wrote the migration script"
        assert result.productivity_metrics.focus_score == pytest.approx(0.73)
        assert result.raw_response == raw
        assert result.score_is_approximate is True
        assert APPROXIMATE_SCORE_NOTE in result.insights

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("## Summary:\nThe rest of the notes go here", "## Summary:"),
            ("**Overview:**  \nEdited configs", "**Overview:**"),
            ("## Summary\nThe rest of the notes go here", "Summary"),
        ],
    )
    def test_bare_summary_heading_is_returned(self, raw: str, expected: str) -> None:
        assert extract_summary(raw) == expected

    def test_summary_defaults_to_leading_text(self) -> None:
        raw = "x" * 500
        assert extract_summary(raw) == "x" * 200

    @pytest.mark.parametrize("raw", ["", "   \n  "])
    def test_blank_text_is_unusable(self, raw: str) -> None:
        assert is_usable_response(raw) is False
        assert try_text_summary(raw) is None


class TestParseResponse:
    """parse_response never raises and always returns a result."""

    def test_structured_tier_first(self, structured_response: str, fallback: HeuristicAnalysis) -> None:
        assert parse_response(structured_response, fallback).source == "ai"

    def test_malformed_json_goes_to_text_tier(self, fallback: HeuristicAnalysis) -> None:
        result = parse_response('{"summary": "cut off', fallback)
        assert result.source == "ai_fallback_text"
        assert result.productivity_metrics.focus_score == pytest.approx(0.5)

    def test_prose_goes_to_text_tier(self, fallback: HeuristicAnalysis) -> None:
        result = parse_response("Highly productive session in the editor.", fallback)
        assert result.source == "ai_fallback_text"
        assert result.productivity_metrics.focus_score == pytest.approx(0.85)

    def test_empty_returns_fallback(self, fallback: HeuristicAnalysis) -> None:
        assert parse_response("", fallback) is fallback

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN", "1e999"])
    @pytest.mark.parametrize("metric", ["focusScore", "distractionEvents", "taskSwitching"])
    def test_non_finite_metric_goes_to_text_tier(
        self, metric: str, literal: str, fallback: HeuristicAnalysis
    ) -> None:
        metrics = {"focusScore": "0.5", "distractionEvents": "1", "taskSwitching": "2"}
        metrics[metric] = literal
        body = ", ".join(f'"{k}": {v}' for k, v in metrics.items())
        raw = f'{{"summary": "tidied the backlog", "productivityMetrics": {{{body}}}}}'

        assert try_structured(raw) is None
        result = parse_response(raw, fallback)
        assert result.source == "ai_fallback_text"
        assert result.raw_response == raw

    def test_non_finite_time_breakdown_entries_are_dropped(self) -> None:
        raw = (
            '{"summary": "x", "productivityMetrics": {"focusScore": 0.6},'
            ' "timeBreakdown": {"coding": 80, "meetings": Infinity, "email": NaN}}'
        )
        result = try_structured(raw)
        assert result is not None
        assert result.time_breakdown == {"coding": 80.0}
