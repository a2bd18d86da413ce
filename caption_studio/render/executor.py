"""Export job executor: submit a render, run it in the background, report progress.

WHY: A render takes as long as the video, far longer than an HTTP request
should stay open. submit() hands back a job id immediately and the actual
work runs as an asyncio task whose only channel back to the caller is the
job record in the repository.

HOW: submit() creates the job, deep-copies the export spec (so later
editor changes cannot leak into an in-flight render) and spawns _run().
_run() builds the filter program, writes the SRT track, runs the encoder
and records the terminal state. Each job has exactly one writer: its own
task.

RULES:
- Progress is clamped into [0, 99] until the job is actually finished
- Success → complete, progress 100, download_url set
- Any failure → failed with a summary message; details go to the log
- The subtitle artifact is deleted on both paths (best-effort)
- No retries and no cancellation; a failed job stays failed
- Jobs run concurrently and share no encoder state
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from caption_studio.config import DOWNLOAD_BASE_URL, EXPORTS_DIR, TEMP_DIR
from caption_studio.core.ir import CaptionStyle, Layer, WordTimestamp
from caption_studio.render.encoder import FFmpegEncoder
from caption_studio.render.program import build
from caption_studio.server.jobs import (
    MAX_PROCESSING_PROGRESS,
    ExportJob,
    JobRepository,
    JobStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class ExportSpec:
    """Everything one render needs."""

    video_path: str
    layers: List[Layer] = field(default_factory=list)
    word_timestamps: List[WordTimestamp] = field(default_factory=list)
    caption_style: CaptionStyle = field(default_factory=CaptionStyle)


class RenderExecutor:
    """Runs export jobs as background asyncio tasks."""

    def __init__(
        self,
        repository: JobRepository,
        encoder: Optional[FFmpegEncoder] = None,
        exports_dir: Path = EXPORTS_DIR,
        temp_dir: Path = TEMP_DIR,
        download_base_url: str = DOWNLOAD_BASE_URL,
    ) -> None:
        self.repository = repository
        self._encoder = encoder or FFmpegEncoder()
        self._exports_dir = Path(exports_dir)
        self._temp_dir = Path(temp_dir)
        self._download_base_url = download_base_url.rstrip("/")
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self, spec: ExportSpec) -> str:
        """Create a job and start rendering it; returns the job id at once.

        Must be called from within a running event loop.
        """
        snapshot = copy.deepcopy(spec)
        job = self.repository.create()
        task = asyncio.get_running_loop().create_task(self._run(job.id, snapshot))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))
        return job.id

    def get_progress(self, job_id: str) -> Optional[ExportJob]:
        return self.repository.get(job_id)

    async def wait(self, job_id: str) -> Optional[ExportJob]:
        """Wait for a job's background task, then return its final state."""
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.repository.get(job_id)

    def _report_progress(self, job_id: str, percent: float) -> None:
        clamped = min(max(int(round(percent)), 0), MAX_PROCESSING_PROGRESS)
        self.repository.update(job_id, progress=clamped)
        logger.debug("Job %s: %d%%", job_id, clamped)

    async def _run(self, job_id: str, spec: ExportSpec) -> None:
        output_name = "export_{}.mp4".format(job_id)
        output_path = self._exports_dir / output_name
        subtitle_path = self._temp_dir / "subtitles_{}.srt".format(job_id)

        try:
            program = build(
                spec.layers,
                spec.word_timestamps,
                spec.caption_style,
                subtitle_path=str(subtitle_path),
            )
            if program.has_subtitles:
                subtitle_path.parent.mkdir(parents=True, exist_ok=True)
                subtitle_path.write_text(program.subtitles_srt, encoding="utf-8")
                logger.info(
                    "Job %s: wrote %d caption cues", job_id, len(spec.word_timestamps)
                )
            if not program.filters:
                logger.warning("Job %s: no filters to apply; captions will not appear", job_id)

            self._exports_dir.mkdir(parents=True, exist_ok=True)
            await self._encoder.run(
                spec.video_path,
                program.filter_chain,
                str(output_path),
                on_progress=lambda percent: self._report_progress(job_id, percent),
            )
        except Exception as exc:
            logger.exception("Export job %s failed", job_id)
            self.repository.update(
                job_id, status=JobStatus.FAILED, error=str(exc) or type(exc).__name__
            )
        else:
            self.repository.update(
                job_id,
                status=JobStatus.COMPLETE,
                download_url="{}/{}".format(self._download_base_url, output_name),
            )
            logger.info("Job %s: complete", job_id)
        finally:
            try:
                subtitle_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove subtitle artifact %s", subtitle_path)
