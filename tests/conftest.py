"""Shared test fixtures for the caption_studio test suite.

WHY: Several modules need the same word sequences, fake collaborators and
credential setup. Centralizing them keeps the expected values in one
place.

HOW: Plain pytest fixtures plus two small helpers: json_transport() builds
an httpx.MockTransport from a routing function, and FakeEncoder stands in
for ffmpeg in executor and API tests.

RULES:
- No test touches the network: collaborator clients get a MockTransport
- No test runs ffmpeg: the executor gets a FakeEncoder
- Credentials are set per-test with monkeypatch, never read from a real .env
"""

from typing import Any, Callable, List, Optional

import httpx
import pytest

from caption_studio.core.ir import WordTimestamp


# ---------------------------------------------------------------------------
# Word sequences
# ---------------------------------------------------------------------------


@pytest.fixture
def hello_world_words() -> List[WordTimestamp]:
    """The two-word sequence used by the SRT offset scenario."""
    return [
        WordTimestamp(word="hello", start=0.4, end=0.6),
        WordTimestamp(word="world", start=0.8, end=1.2),
    ]


@pytest.fixture
def hindi_words() -> List[WordTimestamp]:
    """Five Devanagari words with distinct timings."""
    return [
        WordTimestamp(word="मैं", start=0.0, end=0.3, confidence=0.95),
        WordTimestamp(word="घर", start=0.3, end=0.7, confidence=0.9),
        WordTimestamp(word="जा", start=0.7, end=1.0, confidence=0.88),
        WordTimestamp(word="रहा", start=1.0, end=1.4, confidence=0.92),
        WordTimestamp(word="हूं", start=1.4, end=1.9),
    ]


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@pytest.fixture
def api_keys(monkeypatch):
    """Configure both collaborator keys."""
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "test-assemblyai-key")
    monkeypatch.setenv("OPEN_ROUTER_API_KEY", "test-openrouter-key")


@pytest.fixture
def no_api_keys(monkeypatch):
    """Remove both collaborator keys from the environment."""
    monkeypatch.delenv("ASSEMBLYAI_API_KEY", raising=False)
    monkeypatch.delenv("OPEN_ROUTER_API_KEY", raising=False)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def json_transport(handler: Callable[[httpx.Request], Any]) -> httpx.MockTransport:
    """MockTransport whose handler may return an httpx.Response or a JSON body."""

    def _handle(request: httpx.Request) -> httpx.Response:
        result = handler(request)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    return httpx.MockTransport(_handle)


class FakeEncoder:
    """Stands in for FFmpegEncoder: reports scripted progress, then succeeds or fails.

    Records every call so tests can assert on the filter chain it received.
    """

    def __init__(
        self,
        percents: Optional[List[float]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.percents = percents if percents is not None else [10.0, 55.5, 99.8, 120.0]
        self.error = error
        self.calls: List[dict] = []

    async def run(self, input_path, filter_chain, output_path, on_progress=None) -> None:
        self.calls.append({
            "input_path": input_path,
            "filter_chain": filter_chain,
            "output_path": output_path,
        })
        for percent in self.percents:
            if on_progress:
                on_progress(percent)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def make_encoder() -> Callable[..., FakeEncoder]:
    """Factory for FakeEncoder with custom progress or a failure."""
    return FakeEncoder


@pytest.fixture
def make_transport() -> Callable[[Callable[[httpx.Request], Any]], httpx.MockTransport]:
    """Factory for json_transport()."""
    return json_transport
