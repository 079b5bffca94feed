"""sessionlens -- Batch screenshot analysis for work-session reports.

This package takes windows of captured screenshots for a work session,
obtains an assessment of the work performed (through a multimodal model
or, when that is unavailable, through local heuristics), and aggregates
the per-batch results into session-level productivity reports.
"""

__version__ = "0.1.0"
