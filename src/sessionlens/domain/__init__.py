"""Domain models for sessionlens.

This package contains the core data structures, enumerations, and value
objects used throughout the pipeline. All models use Pydantic v2 for
validation and serialization.
"""

from sessionlens.domain.models import (
    AnalysisResult,
    AnalysisSource,
    AnalysisType,
    Batch,
    BatchProcessingOptions,
    BatchProcessingResult,
    BatchReport,
    BatchStatus,
    CaptureTrigger,
    HeuristicAnalysis,
    PriorAnalysis,
    ProcessingStatus,
    ProductivityMetrics,
    Screenshot,
    SessionReport,
    SessionSummary,
    SessionSummaryView,
    StructuredAnalysis,
    TextFallbackAnalysis,
    WorkSession,
)

__all__ = [
    "AnalysisResult",
    "AnalysisSource",
    "AnalysisType",
    "Batch",
    "BatchProcessingOptions",
    "BatchProcessingResult",
    "BatchReport",
    "BatchStatus",
    "CaptureTrigger",
    "HeuristicAnalysis",
    "PriorAnalysis",
    "ProcessingStatus",
    "ProductivityMetrics",
    "Screenshot",
    "SessionReport",
    "SessionSummary",
    "SessionSummaryView",
    "StructuredAnalysis",
    "TextFallbackAnalysis",
    "WorkSession",
]
