"""Batch pipeline orchestration for sessionlens.

Public API:
    BatchPipeline -- trigger_batch_processing / generate_session_summary
    BatchSelector -- Next-batch selection
    aggregate_batch_reports -- Pure session aggregation
    PipelineStage, PipelineRun -- Per-invocation state tracking
    build_pipeline -- Wiring from Settings
"""

from sessionlens.pipeline.aggregator import aggregate_batch_reports, format_duration
from sessionlens.pipeline.factory import build_pipeline
from sessionlens.pipeline.selector import BatchSelector
from sessionlens.pipeline.service import BatchPipeline
from sessionlens.pipeline.state import InvalidTransition, PipelineRun, PipelineStage

__all__ = [
    "BatchPipeline",
    "BatchSelector",
    "InvalidTransition",
    "PipelineRun",
    "PipelineStage",
    "aggregate_batch_reports",
    "build_pipeline",
    "format_duration",
]
