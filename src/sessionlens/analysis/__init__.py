"""Batch analysis strategies for sessionlens.

Public API:
    AnalysisStrategy -- Abstract strategy base class
    VisionBatchStrategy -- All images plus metadata in one inference call
    PriorDigestStrategy -- Synthesis from existing per-screenshot analyses
    HeuristicStrategy -- Local, inference-free analysis
    FallbackAnalyzer -- Strategy selection with automatic heuristic fallback
"""

from sessionlens.analysis.base import AnalysisStrategy, InferenceStrategy
from sessionlens.analysis.fallback import AnalysisOutcome, FallbackAnalyzer
from sessionlens.analysis.heuristic import HeuristicStrategy, heuristic_analysis
from sessionlens.analysis.priors import PriorDigestStrategy
from sessionlens.analysis.vision import VisionBatchStrategy

__all__ = [
    "AnalysisOutcome",
    "AnalysisStrategy",
    "FallbackAnalyzer",
    "HeuristicStrategy",
    "InferenceStrategy",
    "PriorDigestStrategy",
    "VisionBatchStrategy",
    "heuristic_analysis",
]
