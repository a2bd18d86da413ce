"""Pydantic request/response models for the HTTP API.

WHY: The editor frontend sends and expects camelCase JSON. Typed models
validate incoming payloads, serialize responses with the right field
names, and feed the automatic OpenAPI docs.

HOW: Fields are snake_case in Python with camelCase aliases on the wire.
populate_by_name lets tests and the CLI build models either way. FastAPI
serializes response models by alias.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Word timestamps are validated: start >= 0 and end >= start
- Layers travel as free-form dicts; core.ir.layer_from_dict parses them
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from caption_studio.core.ir import WordTimestamp


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class WordTimestampModel(_CamelModel):
    """One caption word with its interval in seconds."""

    word: str = Field(description="Word text as displayed.")
    start: float = Field(ge=0, description="Start time in seconds.")
    end: float = Field(ge=0, description="End time in seconds.")
    confidence: Optional[float] = Field(
        default=None, ge=0, le=1, description="Recognition confidence, 0–1."
    )

    @model_validator(mode="after")
    def _end_not_before_start(self) -> WordTimestampModel:
        if self.end < self.start:
            raise ValueError("end must be >= start")
        return self

    @classmethod
    def from_word(cls, word: WordTimestamp) -> WordTimestampModel:
        return cls(word=word.word, start=word.start, end=word.end, confidence=word.confidence)

    def to_word(self) -> WordTimestamp:
        return WordTimestamp(
            word=self.word, start=self.start, end=self.end, confidence=self.confidence
        )


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})


# ---------------------------------------------------------------------------
# Captions
# ---------------------------------------------------------------------------


class AutoGenerateRequest(_CamelModel):
    """Request to transcribe a server-side video into word captions."""

    video_path: str = Field(alias="videoPath", description="Path of the uploaded video on the server.")
    language: str = Field(
        default="auto",
        description="'auto' for language detection, or an explicit code such as 'hi' or 'en'.",
    )


class CaptionsResponse(_CamelModel):
    success: bool = Field(default=True, description="Always true on a 200 response.")
    captions: List[WordTimestampModel] = Field(description="Word timestamps in time order.")
    word_count: int = Field(alias="wordCount", description="Number of words.")
    confidence: Optional[float] = Field(
        default=None, description="Mean word confidence, when any words were found."
    )


class HinglishRequest(_CamelModel):
    captions: List[WordTimestampModel] = Field(
        min_length=1, description="Word timestamps to transliterate."
    )


class HinglishResponse(_CamelModel):
    """Transliterated captions. Timestamps are the request's, unchanged."""

    success: bool = Field(default=True)
    captions: List[WordTimestampModel] = Field(description="Transliterated word timestamps.")
    word_count: int = Field(alias="wordCount")
    original_text: str = Field(alias="originalText", description="Joined input words.")
    hinglish_text: str = Field(alias="hinglishText", description="Joined transliterated text.")
    model: str = Field(description="Model name, or 'fallback-rules' for the offline table.")
    timestamps_preserved: bool = Field(default=True)
    note: Optional[str] = Field(default=None, description="Set when the fallback was used.")


class TimestampsRequest(_CamelModel):
    script: str = Field(description="Script text to time evenly.")


class TimestampsResponse(_CamelModel):
    success: bool = Field(default=True)
    timestamps: List[WordTimestampModel]
    word_count: int = Field(alias="wordCount")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class ExportRequest(_CamelModel):
    """Everything needed to render one export."""

    video_url: str = Field(alias="videoUrl", min_length=1, description="Server path of the source video.")
    layers: List[Dict[str, Any]] = Field(default_factory=list, description="Editor layers in z-order.")
    word_timestamps: List[WordTimestampModel] = Field(
        default_factory=list, alias="wordTimestamps", description="Words for the caption track."
    )
    caption_style: Optional[Dict[str, Any]] = Field(
        default=None, alias="captionStyle", description="Caption style; defaults apply when omitted."
    )


class ExportCreatedResponse(_CamelModel):
    success: bool = Field(default=True)
    job_id: str = Field(alias="jobId", description="Job id for progress polling.")
    message: str = Field(default="Export job created")


class ExportJobResponse(_CamelModel):
    """Export job state as returned by the progress endpoint."""

    id: str
    status: str = Field(description="processing, complete, or failed.")
    progress: int = Field(ge=0, le=100)
    created_at: float = Field(alias="createdAt", description="Unix epoch seconds.")
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    error: Optional[str] = Field(default=None)
