"""Tests for the AssemblyAI client and the transcription pipeline.

WHY: Transcription is a multi-step exchange with a remote service, and
each step has its own failure mode (bad status, reported error, never
finishing). These tests drive the real client through an
httpx.MockTransport so the request shapes and the error mapping are both
checked without a network.

HOW: A small fake AssemblyAI backend records requests and serves a
scripted sequence of poll statuses. Polling runs with a zero interval.
Audio extraction is patched for video inputs.
"""

import asyncio
import json
from typing import Dict, List
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from caption_studio.api.assemblyai import (
    AssemblyAIClient,
    AssemblyAIError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
)
from caption_studio.api.models import AssemblyAIWord
from caption_studio.config import ConfigurationError
from caption_studio.core.media import ExtractionError
from caption_studio.core.transcription import normalize_words, transcribe


COMPLETED_WORDS = [
    {"text": "world", "start": 800, "end": 1200, "confidence": 0.97},
    {"text": "hello", "start": 400, "end": 600},
]


class FakeAssemblyAI:
    """Scripted AssemblyAI backend for MockTransport."""

    def __init__(self, statuses: List[Dict], upload_status: int = 200) -> None:
        self.statuses = list(statuses)
        self.upload_status = upload_status
        self.requests: List[httpx.Request] = []
        self.transcript_body: Dict = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/upload"):
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, text="upload rejected")
            return httpx.Response(200, json={"upload_url": "https://cdn.example/audio-1"})
        if request.method == "POST" and path.endswith("/transcript"):
            self.transcript_body = json.loads(request.content)
            return httpx.Response(200, json={"id": "tr-1", "status": "queued"})
        if request.method == "GET" and path.endswith("/transcript/tr-1"):
            body = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json=dict(body, id="tr-1"))
        return httpx.Response(404, text="unexpected {} {}".format(request.method, path))


def _client(backend: FakeAssemblyAI, max_attempts: int = 5) -> AssemblyAIClient:
    return AssemblyAIClient(
        api_key="test-key",
        poll_interval=0,
        max_attempts=max_attempts,
        transport=httpx.MockTransport(backend),
    )


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "clip.mp3"
    path.write_bytes(b"fake mp3 data")
    return path


# ---------------------------------------------------------------------------
# normalize_words
# ---------------------------------------------------------------------------


class TestNormalizeWords:

    def test_converts_ms_and_sorts_by_start(self):
        words = normalize_words([AssemblyAIWord.from_dict(w) for w in COMPLETED_WORDS])
        assert [w.word for w in words] == ["hello", "world"]
        assert (words[0].start, words[0].end) == (0.4, 0.6)
        assert (words[1].start, words[1].end) == (0.8, 1.2)

    def test_missing_confidence_defaults(self):
        words = normalize_words([AssemblyAIWord("a", 0, 100)])
        assert words[0].confidence == 0.9

    def test_end_clamped_to_start(self):
        words = normalize_words([AssemblyAIWord("a", 500, 300, 0.5)])
        assert words[0].start == 0.5
        assert words[0].end == 0.5

    def test_output_satisfies_ordering_invariant(self):
        raw = [AssemblyAIWord(str(i), s, e) for i, (s, e) in enumerate(
            [(900, 950), (0, 80), (450, 400), (200, 260), (200, 210)]
        )]
        words = normalize_words(raw)
        assert all(0 <= w.start <= w.end for w in words)
        assert all(a.start <= b.start for a, b in zip(words, words[1:]))


# ---------------------------------------------------------------------------
# AssemblyAIClient
# ---------------------------------------------------------------------------


class TestAssemblyAIClient:

    def test_requires_context_manager(self):
        client = AssemblyAIClient(api_key="k")
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(client.create_transcript("https://cdn.example/a"))

    def test_missing_key_raises_configuration_error(self, no_api_keys):
        with pytest.raises(ConfigurationError, match="ASSEMBLYAI_API_KEY"):
            AssemblyAIClient()

    def test_placeholder_key_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("ASSEMBLYAI_API_KEY", "your_api_key_here")
        with pytest.raises(ConfigurationError):
            AssemblyAIClient()

    def test_auto_language_enables_detection(self):
        backend = FakeAssemblyAI([{"status": "completed", "words": []}])

        async def run():
            async with _client(backend) as client:
                await client.create_transcript("https://cdn.example/a", language="auto")

        asyncio.run(run())
        assert backend.transcript_body["language_code"] is None
        assert backend.transcript_body["language_detection"] is True
        assert backend.transcript_body["audio_url"] == "https://cdn.example/a"

    def test_explicit_language_passed_through(self):
        backend = FakeAssemblyAI([{"status": "completed", "words": []}])

        async def run():
            async with _client(backend) as client:
                await client.create_transcript("https://cdn.example/a", language="hi")

        asyncio.run(run())
        assert backend.transcript_body["language_code"] == "hi"
        assert "language_detection" not in backend.transcript_body

    def test_sends_authorization_header(self, audio_file):
        backend = FakeAssemblyAI([{"status": "completed", "words": []}])

        async def run():
            async with _client(backend) as client:
                return await client.upload_file(audio_file)

        assert asyncio.run(run()) == "https://cdn.example/audio-1"
        upload = backend.requests[0]
        assert upload.headers["authorization"] == "test-key"
        assert upload.content == b"fake mp3 data"

    def test_upload_error_raises_assemblyai_error(self, audio_file):
        backend = FakeAssemblyAI([], upload_status=401)

        async def run():
            async with _client(backend) as client:
                await client.upload_file(audio_file)

        with pytest.raises(AssemblyAIError) as excinfo:
            asyncio.run(run())
        assert excinfo.value.status_code == 401

    def test_transport_error_raises_assemblyai_error(self, audio_file):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = AssemblyAIClient(api_key="test-key", transport=httpx.MockTransport(handler))
        with pytest.raises(AssemblyAIError, match="connection refused") as excinfo:
            asyncio.run(transcribe(audio_file, client=client))
        assert excinfo.value.status_code is None

    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"url": "missing the expected field"}),
    ])
    def test_malformed_upload_body_raises_assemblyai_error(self, audio_file, response):
        client = AssemblyAIClient(
            api_key="test-key", transport=httpx.MockTransport(lambda request: response)
        )

        async def run():
            async with client:
                await client.upload_file(audio_file)

        with pytest.raises(AssemblyAIError, match="Malformed response") as excinfo:
            asyncio.run(run())
        assert excinfo.value.status_code == 200

    def test_malformed_poll_body_raises_assemblyai_error(self):
        def handler(request):
            return httpx.Response(200, text="not json")

        client = AssemblyAIClient(
            api_key="test-key", poll_interval=0, transport=httpx.MockTransport(handler)
        )

        async def run():
            async with client:
                await client.poll_until_complete("tr-1")

        with pytest.raises(AssemblyAIError, match="Malformed response"):
            asyncio.run(run())


# ---------------------------------------------------------------------------
# transcribe()
# ---------------------------------------------------------------------------


class TestTranscribe:

    def test_polls_until_completed(self, audio_file):
        backend = FakeAssemblyAI([
            {"status": "queued"},
            {"status": "processing"},
            {"status": "completed", "words": COMPLETED_WORDS},
        ])
        words = asyncio.run(transcribe(audio_file, client=_client(backend)))

        assert [w.word for w in words] == ["hello", "world"]
        assert words[0].confidence == 0.9
        assert words[1].confidence == 0.97
        polls = [r for r in backend.requests if r.method == "GET"]
        assert len(polls) == 3

    def test_error_status_raises_failed(self, audio_file):
        backend = FakeAssemblyAI([{"status": "error", "error": "Audio too short"}])
        with pytest.raises(TranscriptionFailedError, match="Audio too short"):
            asyncio.run(transcribe(audio_file, client=_client(backend)))

    def test_poll_ceiling_raises_timeout(self, audio_file):
        backend = FakeAssemblyAI([{"status": "processing"}])
        with pytest.raises(TranscriptionTimeoutError):
            asyncio.run(transcribe(audio_file, client=_client(backend, max_attempts=3)))
        polls = [r for r in backend.requests if r.method == "GET"]
        assert len(polls) == 3

    def test_missing_key_fails_before_any_io(self, no_api_keys, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake video")
        with patch("caption_studio.core.transcription.extract_audio", new=AsyncMock()) as extract:
            with pytest.raises(ConfigurationError):
                asyncio.run(transcribe(video))
        extract.assert_not_called()

    def test_video_audio_extracted_and_artifact_removed(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake video")
        artifact = tmp_path / "audio_x.mp3"
        artifact.write_bytes(b"extracted audio")
        backend = FakeAssemblyAI([{"status": "completed", "words": COMPLETED_WORDS}])

        with patch(
            "caption_studio.core.transcription.extract_audio",
            new=AsyncMock(return_value=artifact),
        ) as extract:
            words = asyncio.run(transcribe(video, client=_client(backend)))

        extract.assert_awaited_once()
        assert len(words) == 2
        assert backend.requests[0].content == b"extracted audio"
        assert not artifact.exists()

    def test_artifact_removed_on_failure(self, tmp_path):
        video = tmp_path / "clip.mov"
        video.write_bytes(b"fake video")
        artifact = tmp_path / "audio_y.mp3"
        artifact.write_bytes(b"extracted audio")
        backend = FakeAssemblyAI([{"status": "error", "error": "boom"}])

        with patch(
            "caption_studio.core.transcription.extract_audio",
            new=AsyncMock(return_value=artifact),
        ):
            with pytest.raises(TranscriptionFailedError):
                asyncio.run(transcribe(video, client=_client(backend)))

        assert not artifact.exists()

    def test_extraction_failure_propagates(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"not really a video")
        backend = FakeAssemblyAI([{"status": "completed", "words": []}])

        with patch(
            "caption_studio.core.transcription.extract_audio",
            new=AsyncMock(side_effect=ExtractionError("Failed to extract audio: bad input")),
        ):
            with pytest.raises(ExtractionError):
                asyncio.run(transcribe(video, client=_client(backend)))

        assert backend.requests == []

    def test_status_callback_receives_messages(self, audio_file):
        backend = FakeAssemblyAI([{"status": "completed", "words": COMPLETED_WORDS}])
        messages = []
        asyncio.run(transcribe(audio_file, client=_client(backend), on_status=messages.append))
        assert "Uploading audio..." in messages
        assert "Transcription complete." in messages
