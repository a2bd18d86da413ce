"""Collaborator API clients — async HTTP interfaces to AssemblyAI and OpenRouter.

WHY: The backend depends on two third-party services it does not
implement. Keeping every HTTP call behind a client class lets the
pipelines stay transport-agnostic and lets tests swap in a mock transport.

HOW: Both clients wrap httpx.AsyncClient as async context managers.
Response payloads are parsed into dataclasses defined in models.py.

RULES:
- All collaborator HTTP calls go through these clients (no direct httpx elsewhere)
- Credentials come from config.load_*_key()
"""

from caption_studio.api.assemblyai import (
    AssemblyAIClient,
    AssemblyAIError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
)
from caption_studio.api.models import AssemblyAIWord, ChatCompletion, TranscriptStatus
from caption_studio.api.openrouter import OpenRouterClient, TransformationError

__all__ = [
    "AssemblyAIClient",
    "AssemblyAIError",
    "AssemblyAIWord",
    "ChatCompletion",
    "OpenRouterClient",
    "TranscriptStatus",
    "TranscriptionFailedError",
    "TranscriptionTimeoutError",
    "TransformationError",
]
