"""Tests for prompt construction."""

from __future__ import annotations

from datetime import timedelta

from sessionlens.analysis.prompts import (
    MAX_INTERVAL_SECONDS,
    build_priors_prompt,
    build_vision_prompt,
    capture_intervals,
)
from sessionlens.domain.models import CaptureTrigger, PriorAnalysis


class TestCaptureIntervals:
    def test_intervals_between_captures(self, screenshot_factory) -> None:
        assert capture_intervals(screenshot_factory(3, interval_seconds=45)) == [45, 45]

    def test_long_gaps_are_capped(self, screenshot_factory) -> None:
        shots = screenshot_factory(2, interval_seconds=7200)
        assert capture_intervals(shots) == [MAX_INTERVAL_SECONDS]

    def test_single_capture_has_no_intervals(self, screenshot_factory) -> None:
        assert capture_intervals(screenshot_factory(1)) == []


class TestVisionPrompt:
    def test_context_and_timeline(self, screenshot_factory) -> None:
        shots = screenshot_factory(
            3,
            interval_seconds=30,
            triggers=[CaptureTrigger.INTERVAL, CaptureTrigger.CLICK],
            apps=["VS Code", "Slack"],
        )
        prompt = build_vision_prompt(shots)

        assert "Screenshots analyzed: 3" in prompt
        assert "Applications detected: VS Code, Slack" in prompt
        assert "Average screenshot interval: 30 seconds" in prompt
        assert "Capture triggers: interval: 2, click: 1" in prompt
        assert "Image 1. [+0s] interval -> VS Code" in prompt
        assert "Image 2. [+30s] click -> Slack" in prompt
        assert '"productivityMetrics"' in prompt

    def test_missing_app_names(self, screenshot_factory) -> None:
        shots = [s.model_copy(update={"active_app": None}) for s in screenshot_factory(2)]
        prompt = build_vision_prompt(shots)
        assert "Unknown (app detection unavailable)" in prompt
        assert "-> Unknown" in prompt


class TestPriorsPrompt:
    def test_digest_lines(self, screenshot_factory) -> None:
        shots = screenshot_factory(2, interval_seconds=90)
        priors = {
            shots[0].id: PriorAnalysis(screenshot_id=shots[0].id, description="Editing   invoice.py\nin the editor"),
        }
        prompt = build_priors_prompt(shots, priors)

        start = shots[0].created_at
        assert f"{start:%H:%M:%S} | VS Code | Editing invoice.py in the editor" in prompt
        second = start + timedelta(seconds=90)
        assert f"{second:%H:%M:%S} | VS Code | (no prior analysis)" in prompt
        assert "Screenshots described: 2" in prompt
