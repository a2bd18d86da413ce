"""Configuration constants, collaborator endpoints, and .env loading.

WHY: The backend talks to two third-party collaborators (AssemblyAI for
speech-to-text, OpenRouter for transliteration) and shells out to ffmpeg.
Every endpoint, credential, binary path and polling constant lives here
so both humans and coding agents can find and override them in one place.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values, each overridable via an environment variable. The
load_*_key() functions raise ConfigurationError when a credential is
missing, so misconfiguration surfaces immediately instead of as a
cryptic 401 from the collaborator.

RULES:
- Credentials are only ever read from the environment, never hardcoded
- Placeholder values copied from .env.example count as "missing"
- Design space is fixed at 1920x1080; render maths assumes 1080 rows
- Transcription polling: fixed 5s interval, 60 attempts (5 minute ceiling)
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the server is run from)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when a required collaborator credential is not configured.

    Fatal and surfaced immediately; never retried.
    """


# ---------------------------------------------------------------------------
# Design space
# ---------------------------------------------------------------------------

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080

# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

VIDEO_EXTENSIONS: set[str] = {
    ".mp4", ".mov", ".mkv", ".webm", ".avi", ".m4v", ".flv", ".wmv",
}
"""Containers whose audio track is extracted before upload (lowercase, with dot)."""

FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
FFPROBE_BINARY = os.getenv("FFPROBE_BINARY", "ffprobe")

EXPORTS_DIR = Path(os.getenv("EXPORTS_DIR", "exports"))
TEMP_DIR = Path(os.getenv("TEMP_DIR", "temp"))
DOWNLOAD_BASE_URL = os.getenv("DOWNLOAD_BASE_URL", "http://localhost:3000/exports")

# 0 disables eviction: terminal jobs live as long as the process.
EXPORT_JOB_TTL_SECONDS = int(os.getenv("EXPORT_JOB_TTL_SECONDS", "0"))

# ---------------------------------------------------------------------------
# AssemblyAI (transcription collaborator)
# ---------------------------------------------------------------------------

ASSEMBLYAI_BASE_URL = os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2")
TRANSCRIPTION_POLL_INTERVAL_S = 5.0
TRANSCRIPTION_MAX_POLL_ATTEMPTS = 60
DEFAULT_WORD_CONFIDENCE = 0.9

# ---------------------------------------------------------------------------
# OpenRouter (text-transformation collaborator)
# ---------------------------------------------------------------------------

OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("MODEL_NAME", "microsoft/phi-3-mini-128k-instruct:free")
OPENROUTER_REFERER = os.getenv("OPENROUTER_REFERER", "http://localhost:9000")

_PLACEHOLDER_KEYS = {"", "your_api_key_here"}


def _load_key(env_name: str, service: str) -> str:
    key = os.getenv(env_name, "").strip()
    if key in _PLACEHOLDER_KEYS:
        raise ConfigurationError(
            "{} API key not configured. "
            "Add {} to the .env file in the app folder.".format(service, env_name)
        )
    return key


def load_assemblyai_key() -> str:
    """Load the AssemblyAI API key from the environment.

    RULES:
    - Raises ConfigurationError if the key is missing, empty or a placeholder
    - Never returns a default value
    """
    return _load_key("ASSEMBLYAI_API_KEY", "AssemblyAI")


def load_openrouter_key() -> str:
    """Load the OpenRouter API key from the environment."""
    return _load_key("OPEN_ROUTER_API_KEY", "OpenRouter")


def is_video_file(path: str | Path) -> bool:
    """True if the path has a video container extension."""
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS
