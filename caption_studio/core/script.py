"""Evenly spaced word timings for a typed script (no audio analysis).

When the user types a script instead of transcribing, each word gets a
fixed slot at an average speaking rate of ~150 words per minute.
"""

from __future__ import annotations

import unicodedata
from typing import List

from caption_studio.core.ir import WordTimestamp

SECONDS_PER_WORD = 0.4

_KEPT_PUNCTUATION = "'-"


def _strip_punctuation(token: str) -> str:
    # Category test rather than \w: Devanagari vowel signs are not \w.
    return "".join(
        ch for ch in token
        if ch in _KEPT_PUNCTUATION or not unicodedata.category(ch).startswith(("P", "S"))
    )


def script_timestamps(script: str, seconds_per_word: float = SECONDS_PER_WORD) -> List[WordTimestamp]:
    """Split a script on whitespace and assign consecutive fixed-length slots.

    Punctuation and symbols other than apostrophes and hyphens are stripped
    from each word.

    Raises:
        ValueError: if the script is empty or whitespace only.
    """
    if not script or not script.strip():
        raise ValueError("Script is required")

    return [
        WordTimestamp(
            word=_strip_punctuation(token),
            start=round(i * seconds_per_word, 3),
            end=round((i + 1) * seconds_per_word, 3),
        )
        for i, token in enumerate(script.split())
    ]
