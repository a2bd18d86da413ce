"""Collaborator response dataclasses (AssemblyAI and OpenRouter).

WHY: Both collaborators return loosely-shaped JSON. Typed dataclasses make
the fields we rely on explicit and keep dict-poking out of the pipelines.

HOW: Each dataclass maps to one JSON object and offers a from_dict factory
that tolerates absent optional fields.

RULES:
- AssemblyAIWord times are integer milliseconds, exactly as sent
- confidence is None when the collaborator omitted it (normalization
  applies the default, not the parser)
- TranscriptStatus.status is one of: queued, processing, completed, error
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AssemblyAIWord:
    """One word from a completed AssemblyAI transcript."""

    text: str
    start_ms: int
    end_ms: int
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AssemblyAIWord:
        return cls(
            text=data["text"],
            start_ms=int(data.get("start") or 0),
            end_ms=int(data.get("end") or 0),
            confidence=data.get("confidence"),
        )


@dataclass
class TranscriptStatus:
    """Response from GET /transcript/{id}.

    RULES:
    - words is empty until status is "completed"
    - error is only present when status is "error"
    - confidence is the transcript-level average, when provided
    """

    id: str
    status: str
    words: List[AssemblyAIWord] = field(default_factory=list)
    error: Optional[str] = None
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptStatus:
        return cls(
            id=data["id"],
            status=data["status"],
            words=[AssemblyAIWord.from_dict(w) for w in data.get("words") or []],
            error=data.get("error"),
            confidence=data.get("confidence"),
        )


@dataclass
class ChatCompletion:
    """The single text completion we need from a chat-completion response."""

    model: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ChatCompletion:
        """Parse the first choice's message content.

        Missing choices or message yield empty content rather than KeyError;
        the caller decides what an empty completion means.
        """
        choices = data.get("choices") or []
        content = ""
        if choices:
            message = choices[0].get("message") or {}
            content = (message.get("content") or "").strip()
        return cls(model=data.get("model") or "", content=content)
