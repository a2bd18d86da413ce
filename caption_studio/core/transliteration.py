"""Hinglish transliteration of caption words with timestamp preservation.

WHY: Transcribed Hindi comes back in Devanagari, but the captions are
meant to be read in Roman script. The words must change while every
timing stays exactly where AssemblyAI put it, otherwise the burned-in
captions drift out of sync with the speech.

HOW: Join the words with spaces, ask the OpenRouter collaborator to
transliterate, split the answer on whitespace, and map the candidates
back onto the original WordTimestamps positionally. Any collaborator
failure falls back to the local substitution table.

RULES:
- Output length always equals input length
- start/end are never altered, whichever branch produced the text
- Fewer candidates than words: trailing originals are kept unchanged
- More candidates than words: the extras are ignored
- TransformationError is recovered locally and never propagated
- ConfigurationError (missing key) is NOT recovered; it surfaces
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from caption_studio.api.openrouter import OpenRouterClient, TransformationError
from caption_studio.core.ir import WordTimestamp
from caption_studio.core.romanization import romanize_text

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "fallback-rules"


@dataclass
class TransformResult:
    """Transliterated words plus the texts and the model that produced them."""

    words: List[WordTimestamp]
    original_text: str
    transformed_text: str
    model: str
    used_fallback: bool = False


def reconcile(words: Sequence[WordTimestamp], candidates: Sequence[str]) -> List[WordTimestamp]:
    """Map candidate words onto the original sequence by position."""
    result = []
    for i, original in enumerate(words):
        text = candidates[i] if i < len(candidates) else original.word
        result.append(WordTimestamp(
            word=text,
            start=original.start,
            end=original.end,
            confidence=original.confidence if original.confidence is not None else 1.0,
        ))
    return result


def fallback_transform(words: Sequence[WordTimestamp]) -> TransformResult:
    """Romanize with the local table only; makes no network call."""
    original_text = " ".join(w.word for w in words)
    transformed = romanize_text(original_text)
    return TransformResult(
        words=reconcile(words, transformed.split()),
        original_text=original_text,
        transformed_text=transformed,
        model=FALLBACK_MODEL,
        used_fallback=True,
    )


async def transform(
    words: Sequence[WordTimestamp],
    client: Optional[OpenRouterClient] = None,
) -> TransformResult:
    """Transliterate words into Hinglish, keeping every timestamp.

    Raises:
        ConfigurationError: no OpenRouter key and no client supplied.
    """
    if not words:
        return TransformResult(words=[], original_text="", transformed_text="", model=FALLBACK_MODEL)

    client = client or OpenRouterClient()
    original_text = " ".join(w.word for w in words)
    logger.info("Converting %d words to Hinglish using %s", len(words), client.model)

    try:
        async with client:
            transformed = await client.complete(original_text)
    except TransformationError as exc:
        logger.warning("Transliteration collaborator failed (%s); using fallback rules", exc)
        return fallback_transform(words)

    candidates = transformed.split()
    if len(candidates) != len(words):
        logger.info(
            "Word count mismatch: %d original, %d transliterated; aligning by position",
            len(words), len(candidates),
        )

    return TransformResult(
        words=reconcile(words, candidates),
        original_text=original_text,
        transformed_text=transformed,
        model=client.model,
    )
