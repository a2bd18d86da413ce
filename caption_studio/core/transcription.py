"""Transcription acquisition: media file → canonical word timestamps.

WHY: The editor's auto-caption button needs per-word timing for whatever
is spoken in the uploaded video. This module runs the whole acquisition
sequence and hands back WordTimestamp objects the rest of the system
understands, hiding AssemblyAI's millisecond format.

HOW: extract audio (video inputs only) → upload → create transcript job →
poll → normalize. The temporary audio file is always removed in a
finally block.

RULES:
- Milliseconds are divided by 1000; missing confidence becomes 0.9
- Output is sorted by start (stable) and satisfies end >= start >= 0
- Audio artifact deletion is best-effort; failures are logged, never raised
- The whole call is one awaitable; there is no job-based variant
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import List, Optional

from caption_studio.api.assemblyai import AssemblyAIClient
from caption_studio.api.models import AssemblyAIWord
from caption_studio.config import DEFAULT_WORD_CONFIDENCE, TEMP_DIR, is_video_file
from caption_studio.core.ir import WordTimestamp
from caption_studio.core.media import extract_audio

logger = logging.getLogger(__name__)


def normalize_words(words: List[AssemblyAIWord]) -> List[WordTimestamp]:
    """Convert collaborator words into ordered WordTimestamps."""
    result = []
    for w in words:
        start = max(0.0, w.start_ms / 1000)
        end = max(start, w.end_ms / 1000)
        confidence = w.confidence if w.confidence is not None else DEFAULT_WORD_CONFIDENCE
        result.append(WordTimestamp(word=w.text, start=start, end=end, confidence=confidence))
    result.sort(key=lambda wt: wt.start)
    return result


def _remove_artifact(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        logger.debug("Could not remove temporary audio %s", path)


async def transcribe(
    audio_source: Path,
    language_hint: str = "auto",
    client: Optional[AssemblyAIClient] = None,
    work_dir: Optional[Path] = None,
    on_status: Callable[[str], None] | None = None,
) -> List[WordTimestamp]:
    """Transcribe a local audio/video file into word timestamps.

    Args:
        audio_source: Path to a local audio or video file.
        language_hint: "auto" or an explicit language code.
        client: Optional pre-built AssemblyAIClient (not yet entered).
        work_dir: Directory for the temporary audio artifact.
        on_status: Optional progress callback.

    Raises:
        ConfigurationError: AssemblyAI key missing (raised before any I/O).
        ExtractionError: ffmpeg could not extract the audio track.
        TranscriptionFailedError: the collaborator reported an error.
        TranscriptionTimeoutError: the poll ceiling was exceeded.
        AssemblyAIError: a request failed or returned an unusable body.
    """
    client = client or AssemblyAIClient()
    source = Path(audio_source)
    artifact: Optional[Path] = None

    try:
        if is_video_file(source):
            artifact = await extract_audio(source, work_dir or TEMP_DIR)
            upload_path = artifact
        else:
            upload_path = source

        async with client:
            upload_url = await client.upload_file(upload_path, on_status=on_status)
            transcript_id = await client.create_transcript(
                upload_url, language=language_hint, on_status=on_status
            )
            status = await client.poll_until_complete(transcript_id, on_status=on_status)
    finally:
        if artifact is not None:
            _remove_artifact(artifact)

    words = normalize_words(status.words)
    if words:
        logger.info(
            "Transcribed %d words from %s (%.2fs–%.2fs)",
            len(words), source.name, words[0].start, words[-1].end,
        )
    else:
        logger.warning("Transcription of %s returned no words", source.name)
    return words
