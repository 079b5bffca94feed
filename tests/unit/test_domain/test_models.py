"""Tests for core domain models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from sessionlens.domain.models import (
    AnalysisResult,
    Batch,
    BatchReport,
    CaptureTrigger,
    HeuristicAnalysis,
    ProductivityMetrics,
    Screenshot,
    StructuredAnalysis,
    TextFallbackAnalysis,
)

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestScreenshot:
    def test_unknown_trigger_coerces_to_unknown(self) -> None:
        shot = Screenshot(id="s1", session_id="x", user_id="u", created_at=NOW, capture_trigger="scroll")
        assert shot.capture_trigger == CaptureTrigger.UNKNOWN

    def test_trigger_is_case_insensitive(self) -> None:
        shot = Screenshot(id="s1", session_id="x", user_id="u", created_at=NOW, capture_trigger="Click")
        assert shot.capture_trigger == CaptureTrigger.CLICK

    def test_screenshot_is_immutable(self) -> None:
        shot = Screenshot(id="s1", session_id="x", user_id="u", created_at=NOW)
        with pytest.raises(ValidationError):
            shot.active_app = "Slack"


class TestProductivityMetrics:
    @pytest.mark.parametrize("raw, expected", [(1.7, 1.0), (-0.2, 0.0), (0.42, 0.42)])
    def test_focus_score_is_clamped(self, raw: float, expected: float) -> None:
        assert ProductivityMetrics(focus_score=raw).focus_score == expected

    def test_negative_counts_become_zero(self) -> None:
        metrics = ProductivityMetrics(focus_score=0.5, distraction_events=-3, task_switching=-1)
        assert metrics.distraction_events == 0
        assert metrics.task_switching == 0


class TestAnalysisResult:
    """The union is discriminated on ``source``."""

    adapter = TypeAdapter(AnalysisResult)

    def test_dispatches_on_source(self) -> None:
        metrics = {"focus_score": 0.6}
        assert isinstance(
            self.adapter.validate_python({"source": "ai", "productivity_metrics": metrics}),
            StructuredAnalysis,
        )
        assert isinstance(
            self.adapter.validate_python(
                {"source": "ai_fallback_text", "productivity_metrics": metrics, "raw_response": "text"}
            ),
            TextFallbackAnalysis,
        )
        assert isinstance(
            self.adapter.validate_python({"source": "heuristic_fallback", "productivity_metrics": metrics}),
            HeuristicAnalysis,
        )

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"source": "guess", "productivity_metrics": {"focus_score": 0.5}})

    def test_text_fallback_is_always_approximate(self) -> None:
        result = TextFallbackAnalysis(
            productivity_metrics=ProductivityMetrics(focus_score=0.5), raw_response="meh"
        )
        assert result.score_is_approximate is True

    def test_batch_report_json_keeps_variant(self) -> None:
        report = BatchReport(
            id="r1",
            session_id="x",
            user_id="u",
            batch_number=1,
            screenshot_count=1,
            analysis=HeuristicAnalysis(productivity_metrics=ProductivityMetrics(focus_score=0.8)),
            created_at=NOW,
        )
        restored = BatchReport.model_validate_json(report.model_dump_json())
        assert isinstance(restored.analysis, HeuristicAnalysis)
        assert restored == report


class TestBatch:
    def test_empty_batch_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Batch(session_id="x", user_id="u", batch_number=1, screenshots=[])

    def test_batch_number_starts_at_one(self, screenshot_factory) -> None:
        with pytest.raises(ValidationError):
            Batch(session_id="x", user_id="u", batch_number=0, screenshots=screenshot_factory(1))

    def test_time_bounds(self, screenshot_factory) -> None:
        shots = screenshot_factory(3, interval_seconds=60)
        batch = Batch(session_id="x", user_id="u", batch_number=1, screenshots=shots)
        assert batch.start_time == shots[0].created_at
        assert batch.end_time == shots[2].created_at
        assert batch.screenshot_ids == [s.id for s in shots]
