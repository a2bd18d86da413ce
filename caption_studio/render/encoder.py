"""ffmpeg invocation with streamed progress.

WHY: The render executor needs to run one ffmpeg pass asynchronously and
learn how far along it is, without blocking the event loop that also
serves progress polls.

HOW: asyncio.create_subprocess_exec with "-progress pipe:1". ffmpeg then
writes key=value blocks to stdout; out_time_us divided by the probed
input duration gives a fractional percent, reported through on_progress.
stderr is drained concurrently so a chatty encoder cannot fill the pipe.

RULES:
- Video codec libx264, audio stream copied (-c:a copy)
- on_progress receives raw percents; clamping is the caller's concern
- Non-zero exit or a missing binary raises RenderError with a summary;
  the stderr tail is logged, not put into the exception message
- An interrupted run (callback error or cancellation) kills ffmpeg and
  reaps it before the exception propagates
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import List, Optional

from caption_studio.config import FFMPEG_BINARY
from caption_studio.core.media import probe_duration

logger = logging.getLogger(__name__)

VIDEO_CODEC = "libx264"


class RenderError(RuntimeError):
    """Raised when the encoder exits unsuccessfully."""


def build_command(input_path: str, filter_chain: str, output_path: str) -> List[str]:
    cmd = [FFMPEG_BINARY, "-y", "-nostats", "-i", str(input_path)]
    if filter_chain:
        cmd += ["-vf", filter_chain]
    cmd += [
        "-c:v", VIDEO_CODEC,
        "-c:a", "copy",
        "-progress", "pipe:1",
        str(output_path),
    ]
    return cmd


def parse_progress_line(line: str, duration: Optional[float]) -> Optional[float]:
    """Percent complete for one -progress line, or None if it carries none."""
    if not duration or not line.startswith(("out_time_us=", "out_time_ms=")):
        return None
    try:
        micros = int(line.split("=", 1)[1])
    except ValueError:
        return None
    return micros / 1_000_000 / duration * 100


class FFmpegEncoder:
    """Runs ffmpeg for one export."""

    async def run(
        self,
        input_path: str,
        filter_chain: str,
        output_path: str,
        on_progress: Callable[[float], None] | None = None,
    ) -> None:
        duration = await probe_duration(input_path)
        cmd = build_command(input_path, filter_chain, output_path)
        logger.info("FFmpeg started: %s", " ".join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise RenderError("{} not found".format(FFMPEG_BINARY)) from exc

        stderr_task = asyncio.ensure_future(proc.stderr.read())

        try:
            async for raw_line in proc.stdout:
                line = raw_line.decode("utf-8", errors="replace").strip()
                percent = parse_progress_line(line, duration)
                if percent is not None and on_progress:
                    on_progress(percent)

            stderr = (await stderr_task).decode("utf-8", errors="replace")
            returncode = await proc.wait()
        finally:
            if proc.returncode is None:
                logger.warning("Stopping interrupted ffmpeg run for %s", output_path)
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
                await stderr_task

        if returncode != 0:
            logger.error("FFmpeg stderr:\n%s", stderr[-2000:])
            raise RenderError("ffmpeg exited with code {}".format(returncode))
