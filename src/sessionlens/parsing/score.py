"""Approximate productivity score recovery from unstructured text.

The value returned here is a rough, non-authoritative signal. It is only
used when the model did not return structured JSON, and every result
built from it is tagged as approximate.
"""

from __future__ import annotations

import re

NEUTRAL_SCORE = 50.0

_NUMBER = r"(\d+(?:\.\d+)?)"

# Applied in order; the first numeric match wins.
SCORE_PATTERNS = (
    re.compile(r"productivity[^\d\n]{0,40}?" + _NUMBER, re.IGNORECASE),
    re.compile(r"score[^\d\n]{0,40}?" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*%"),
)

# (phrases, score) buckets, checked in order.
KEYWORD_BUCKETS = (
    (("highly productive", "excellent"), 85.0),
    (("productive", "focused"), 75.0),
    (("moderately", "some progress"), 65.0),
)


def extract_score(text: str) -> float:
    """Recover an approximate 0-100 productivity score from prose.

    Tries "productivity ... NN", then "score ... NN", then "NN%"; the first
    number found is clamped to [0, 100]. Without a number, falls back to
    keyword sentiment buckets, and to 50 when nothing matches.
    """
    if not text:
        return NEUTRAL_SCORE

    for pattern in SCORE_PATTERNS:
        match = pattern.search(text)
        if match:
            return max(0.0, min(100.0, float(match.group(1))))

    lowered = text.lower()
    for phrases, score in KEYWORD_BUCKETS:
        if any(phrase in lowered for phrase in phrases):
            return score
    return NEUTRAL_SCORE
