"""Async HTTP client for the AssemblyAI speech-to-text API.

WHY: Auto-captioning needs word-level timestamps for the speech in an
uploaded video. AssemblyAI provides them through a three-step async
workflow; this module hides the HTTP details behind one client class so
the transcription pipeline only deals with typed results.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. AssemblyAIClient is an
async context manager — enter it to get an authenticated client, exit to
close the connection pool. Each API step is a separate method:
upload_file → create_transcript → poll_until_complete.

RULES:
- Always use the async context manager (async with AssemblyAIClient() as client:)
- The API key is sent as the raw "authorization" header (no Bearer prefix)
- Polling uses a fixed 5s interval and gives up after 60 attempts
- language "auto" sends language_code=null and enables language detection
- Non-2xx responses raise AssemblyAIError with status and body
- Transport failures and unreadable bodies also raise AssemblyAIError
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from caption_studio.api.models import TranscriptStatus
from caption_studio.config import (
    ASSEMBLYAI_BASE_URL,
    TRANSCRIPTION_MAX_POLL_ATTEMPTS,
    TRANSCRIPTION_POLL_INTERVAL_S,
    load_assemblyai_key,
)

logger = logging.getLogger(__name__)


class AssemblyAIError(Exception):
    """Raised when an AssemblyAI request fails or returns an unusable response.

    RULES:
    - Carries status_code (None when no response arrived) and message
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"AssemblyAI request failed: {message}")
        else:
            super().__init__(f"AssemblyAI API error {status_code}: {message}")


class TranscriptionFailedError(Exception):
    """Raised when a transcript job reaches the "error" status.

    The message is the collaborator's own error text.
    """


class TranscriptionTimeoutError(TimeoutError):
    """Raised when polling exceeds the attempt ceiling."""


class AssemblyAIClient:
    """Async client for the AssemblyAI pre-recorded transcription API.

    WHY: Provides a typed interface for upload → create → poll, handling
    auth, the fixed polling budget, and error wrapping.

    HOW: Wraps httpx.AsyncClient with the authorization header. A custom
    transport can be injected, which is how the tests drive it.

    RULES:
    - api_key defaults to load_assemblyai_key() (ConfigurationError if unset)
    - poll_interval / max_attempts default to the config constants
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        poll_interval: float = TRANSCRIPTION_POLL_INTERVAL_S,
        max_attempts: int = TRANSCRIPTION_MAX_POLL_ATTEMPTS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_assemblyai_key()
        self._base_url = (base_url or ASSEMBLYAI_BASE_URL).rstrip("/")
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AssemblyAIClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"authorization": self._api_key},
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "AssemblyAIClient must be used as an async context manager: "
                "async with AssemblyAIClient() as client: ..."
            )
        return self._client

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:  # noqa: ANN003
        client = self._ensure_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise AssemblyAIError(None, str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _read_json(resp: httpx.Response) -> dict:
        """Decode a 2xx body, wrapping anything that is not a JSON object."""
        try:
            data = resp.json()
        except ValueError as exc:
            raise AssemblyAIError(resp.status_code, f"Malformed response: {exc}") from exc
        if not isinstance(data, dict):
            raise AssemblyAIError(resp.status_code, "Malformed response: expected a JSON object")
        return data

    @classmethod
    def _read_field(cls, resp: httpx.Response, key: str) -> str:
        data = cls._read_json(resp)
        if key not in data:
            raise AssemblyAIError(resp.status_code, f"Malformed response: missing {key!r}")
        return data[key]

    # ------------------------------------------------------------------
    # Step 1: Upload audio
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        file_path: Path,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Upload a local audio file and return its opaque upload URL.

        RULES:
        - Body is the raw file bytes (application/octet-stream)
        - Returns the upload_url string from the response
        - Raises AssemblyAIError on non-2xx responses
        """
        self._ensure_client()
        if on_status:
            on_status("Uploading audio...")

        data = Path(file_path).read_bytes()
        resp = await self._send(
            "POST",
            "/upload",
            content=data,
            headers={"content-type": "application/octet-stream"},
        )
        if resp.status_code not in (200, 201):
            raise AssemblyAIError(resp.status_code, resp.text)

        return self._read_field(resp, "upload_url")

    # ------------------------------------------------------------------
    # Step 2: Create transcript job
    # ------------------------------------------------------------------

    async def create_transcript(
        self,
        audio_url: str,
        language: str = "auto",
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Create a transcript job for an uploaded file; return its id.

        Args:
            audio_url: The upload_url from upload_file().
            language: "auto" or an explicit language code (e.g. "hi", "en").
            on_status: Optional callback for status updates.
        """
        self._ensure_client()
        if on_status:
            on_status("Starting transcription...")

        body: dict = {
            "audio_url": audio_url,
            "language_code": None if language == "auto" else language,
            "word_boost": [],
            "boost_param": "default",
        }
        if language == "auto":
            body["language_detection"] = True

        resp = await self._send("POST", "/transcript", json=body)
        if resp.status_code not in (200, 201):
            raise AssemblyAIError(resp.status_code, resp.text)

        return self._read_field(resp, "id")

    # ------------------------------------------------------------------
    # Step 3: Poll until complete
    # ------------------------------------------------------------------

    async def poll_until_complete(
        self,
        transcript_id: str,
        on_status: Callable[[str], None] | None = None,
    ) -> TranscriptStatus:
        """Poll a transcript job until it completes, fails, or times out.

        HOW: Fixed-interval polling. A status of "queued" or "processing"
        sleeps and retries; "completed" returns; "error" raises.

        RULES:
        - Returns TranscriptStatus (with words) when status is "completed"
        - Raises TranscriptionFailedError when status is "error"
        - Raises TranscriptionTimeoutError after max_attempts polls
        """
        self._ensure_client()

        for attempt in range(1, self._max_attempts + 1):
            resp = await self._send("GET", f"/transcript/{transcript_id}")
            if resp.status_code != 200:
                raise AssemblyAIError(resp.status_code, resp.text)

            status = TranscriptStatus.from_dict(self._read_json(resp))
            logger.debug(
                "Transcript %s poll %d/%d: %s",
                transcript_id, attempt, self._max_attempts, status.status,
            )

            if status.status == "completed":
                if on_status:
                    on_status("Transcription complete.")
                return status

            if status.status == "error":
                if on_status:
                    on_status(f"Transcription error: {status.error}")
                raise TranscriptionFailedError(f"Transcription failed: {status.error}")

            if on_status:
                on_status(f"Transcription {status.status}... (poll {attempt})")

            await asyncio.sleep(self._poll_interval)

        raise TranscriptionTimeoutError(
            f"Transcription {transcript_id} timed out after "
            f"{self._max_attempts} polls ({self._max_attempts * self._poll_interval:.0f}s)"
        )
