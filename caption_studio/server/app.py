"""FastAPI application: caption, transliteration, and export routes.

WHY: The browser editor needs an HTTP backend for the work it cannot do
client-side — speech transcription, Hinglish conversion, script timing,
and the final ffmpeg render. FastAPI gives request validation, background
tasks on the same event loop, and OpenAPI docs for free.

HOW: Caption endpoints await their pipeline and answer when it is done.
The export endpoint submits a job to the RenderExecutor and returns the
job id at once; the progress endpoint reads the job repository.

RULES:
- Every route declares its error responses with the ErrorResponse schema
- ConfigurationError → 500, bad media → 422, collaborator failures → 502,
  transcription timeout → 504, unknown export job → 404
- Export payloads are validated (layers, colours) before a job is created
- The job repository and executor are module singletons
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

from caption_studio import __version__
from caption_studio.api.assemblyai import (
    AssemblyAIError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
)
from caption_studio.config import EXPORT_JOB_TTL_SECONDS, EXPORTS_DIR, ConfigurationError
from caption_studio.core.ir import CaptionStyle, layer_from_dict
from caption_studio.core.media import ExtractionError
from caption_studio.core.script import script_timestamps
from caption_studio.core.transcription import transcribe
from caption_studio.core.transliteration import transform
from caption_studio.render.executor import ExportSpec, RenderExecutor
from caption_studio.render.program import build
from caption_studio.server.jobs import ExportJob, InMemoryJobRepository
from caption_studio.server.models import (
    AutoGenerateRequest,
    CaptionsResponse,
    ErrorResponse,
    ExportCreatedResponse,
    ExportJobResponse,
    ExportRequest,
    HealthResponse,
    HinglishRequest,
    HinglishResponse,
    TimestampsRequest,
    TimestampsResponse,
    WordTimestampModel,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_repository = InMemoryJobRepository(ttl_seconds=EXPORT_JOB_TTL_SECONDS)
executor = RenderExecutor(job_repository)


async def _periodic_cleanup() -> None:
    """Evict expired export jobs every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_repository.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic job eviction when a TTL is configured."""
    task = asyncio.create_task(_periodic_cleanup()) if EXPORT_JOB_TTL_SECONDS else None
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    lifespan=lifespan,
    title="Caption Studio API",
    description=(
        "Backend for the caption/overlay editor: word-level auto-captions, "
        "Hinglish transliteration with preserved timestamps, and asynchronous "
        "export with burned-in captions and text overlays."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: ExportJob) -> ExportJobResponse:
    return ExportJobResponse(
        id=job.id,
        status=job.status.value,
        progress=job.progress,
        created_at=job.created_at,
        download_url=job.download_url,
        error=job.error,
    )


def _mean_confidence(captions) -> "float | None":
    values = [c.confidence for c in captions if c.confidence is not None]
    return sum(values) / len(values) if values else None


# ---------------------------------------------------------------------------
# Endpoints: Captions
# ---------------------------------------------------------------------------


@app.post(
    "/api/captions/auto-generate",
    response_model=CaptionsResponse,
    tags=["captions"],
    summary="Transcribe a video into word captions",
    description=(
        "Extracts the audio track, transcribes it with AssemblyAI, and returns "
        "word-level timestamps. Responds only once transcription has finished "
        "(up to 5 minutes)."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Video not found"},
        422: {"model": ErrorResponse, "description": "Audio could not be extracted"},
        500: {"model": ErrorResponse, "description": "AssemblyAI key not configured"},
        502: {"model": ErrorResponse, "description": "Transcription failed"},
        504: {"model": ErrorResponse, "description": "Transcription timed out"},
    },
)
async def auto_generate_captions(request: AutoGenerateRequest) -> CaptionsResponse:
    video_path = Path(request.video_path)
    if not video_path.is_file():
        raise HTTPException(status_code=400, detail="Video not found: {}".format(request.video_path))

    logger.info("Auto-generating captions for %s (language=%s)", video_path, request.language)
    try:
        words = await transcribe(video_path, request.language)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    except ExtractionError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except TranscriptionTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc))
    except (TranscriptionFailedError, AssemblyAIError) as exc:
        raise HTTPException(status_code=502, detail="Failed to generate captions: {}".format(exc))

    captions = [WordTimestampModel.from_word(w) for w in words]
    return CaptionsResponse(
        captions=captions,
        word_count=len(captions),
        confidence=_mean_confidence(captions),
    )


@app.post(
    "/api/captions/convert-hinglish",
    response_model=HinglishResponse,
    tags=["captions"],
    summary="Transliterate captions to Hinglish",
    description=(
        "Romanizes caption words via a language model, falling back to an "
        "offline substitution table when the model is unavailable. The "
        "response always has the same number of words and identical timestamps."
    ),
    responses={
        500: {"model": ErrorResponse, "description": "OpenRouter key not configured"},
    },
)
async def convert_hinglish(request: HinglishRequest) -> HinglishResponse:
    words = [c.to_word() for c in request.captions]
    try:
        result = await transform(words)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    captions = [WordTimestampModel.from_word(w) for w in result.words]
    return HinglishResponse(
        captions=captions,
        word_count=len(captions),
        original_text=result.original_text,
        hinglish_text=result.transformed_text,
        model=result.model,
        note="Used rule-based conversion due to API error" if result.used_fallback else None,
    )


@app.post(
    "/api/generate-timestamps",
    response_model=TimestampsResponse,
    tags=["captions"],
    summary="Evenly time a typed script",
    responses={400: {"model": ErrorResponse, "description": "Empty script"}},
)
async def generate_timestamps(request: TimestampsRequest) -> TimestampsResponse:
    try:
        words = script_timestamps(request.script)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    timestamps = [WordTimestampModel.from_word(w) for w in words]
    return TimestampsResponse(timestamps=timestamps, word_count=len(timestamps))


# ---------------------------------------------------------------------------
# Endpoints: Export
# ---------------------------------------------------------------------------


@app.post(
    "/api/export",
    response_model=ExportCreatedResponse,
    tags=["export"],
    summary="Submit an export job",
    description=(
        "Validates the timeline and starts rendering in the background. "
        "Poll GET /api/export/progress/{jobId} for status."
    ),
    responses={400: {"model": ErrorResponse, "description": "Invalid layers or style"}},
)
async def create_export(request: ExportRequest) -> ExportCreatedResponse:
    try:
        layers = [layer_from_dict(data) for data in request.layers]
        style = CaptionStyle.from_dict(request.caption_style)
        words = [w.to_word() for w in request.word_timestamps]
        # Dry run: surfaces bad colours now instead of as a failed job.
        build(layers, words, style)
    except (ValueError, TypeError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    job_id = executor.submit(ExportSpec(
        video_path=request.video_url,
        layers=layers,
        word_timestamps=words,
        caption_style=style,
    ))
    logger.info("Export job %s submitted (%d layers, %d words)", job_id, len(layers), len(words))
    return ExportCreatedResponse(job_id=job_id)


@app.get(
    "/api/export/progress/{job_id}",
    response_model=ExportJobResponse,
    response_model_exclude_none=True,
    tags=["export"],
    summary="Get export job progress",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_export_progress(job_id: str) -> ExportJobResponse:
    job = executor.get_progress(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_to_response(job)


@app.get(
    "/exports/{filename}",
    tags=["export"],
    summary="Download a rendered video",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid filename"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
)
async def download_export(filename: str) -> FileResponse:
    if "/" in filename or "\\" in filename or ".." in filename:
        raise HTTPException(status_code=400, detail="Invalid filename")
    path = EXPORTS_DIR / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File '{}' not found.".format(filename))
    return FileResponse(path, media_type="video/mp4", filename=filename)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 3000) -> None:
    """Entry point for the caption-studio-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
