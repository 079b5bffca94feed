"""Response parsing for sessionlens.

Turns raw inference text into structured analysis results through an
ordered chain of total functions, plus a last-resort numeric score
recovery for unstructured prose.
"""

from sessionlens.parsing.response import (
    extract_json_object,
    is_usable_response,
    parse_response,
    try_structured,
    try_text_summary,
)
from sessionlens.parsing.score import extract_score

__all__ = [
    "extract_json_object",
    "extract_score",
    "is_usable_response",
    "parse_response",
    "try_structured",
    "try_text_summary",
]
