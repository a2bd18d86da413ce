"""ffmpeg/ffprobe helpers: audio extraction and duration probing.

WHY: Transcription uploads audio only (smaller, faster), so video
containers must have their audio track extracted first. The render
executor needs the input duration to turn ffmpeg's out_time into a
percentage.

HOW: Both helpers run the external binaries through
asyncio.create_subprocess_exec so the event loop is never blocked.

RULES:
- extract_audio raises ExtractionError for a non-zero exit or missing binary
- probe_duration never raises; it returns None when the duration is unknown
"""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from caption_studio.config import FFMPEG_BINARY, FFPROBE_BINARY

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """Raised when ffmpeg fails to extract an audio track."""


async def extract_audio(video_path: Path, output_dir: Optional[Path] = None) -> Path:
    """Extract the audio track of a video into a temporary mp3.

    The caller owns the returned file and must delete it.
    """
    out_dir = Path(output_dir) if output_dir else Path(tempfile.gettempdir())
    out_dir.mkdir(parents=True, exist_ok=True)
    audio_path = out_dir / "audio_{}.mp3".format(uuid.uuid4().hex)

    cmd = [
        FFMPEG_BINARY, "-y", "-i", str(video_path),
        "-vn", "-acodec", "libmp3lame", "-q:a", "2",
        str(audio_path),
    ]
    logger.info("Extracting audio from %s", video_path)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ExtractionError(
            "Failed to extract audio: {} not found".format(FFMPEG_BINARY)
        ) from exc

    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        audio_path.unlink(missing_ok=True)
        tail = stderr.decode("utf-8", errors="replace")[-500:]
        raise ExtractionError("Failed to extract audio: {}".format(tail.strip()))

    return audio_path


async def probe_duration(media_path: str) -> Optional[float]:
    """Return the container duration in seconds, or None if unknown."""
    cmd = [
        FFPROBE_BINARY, "-v", "quiet", "-print_format", "json",
        "-show_format", str(media_path),
    ]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await proc.communicate()
    except FileNotFoundError:
        logger.warning("%s not found; export progress will not be reported", FFPROBE_BINARY)
        return None

    if proc.returncode != 0:
        return None
    try:
        duration = float(json.loads(stdout.decode())["format"]["duration"])
    except (ValueError, KeyError, TypeError):
        return None
    return duration if duration > 0 else None
