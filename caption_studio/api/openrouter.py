"""Async client for the OpenRouter chat-completion endpoint.

WHY: Hindi captions read better on social video when romanized
("Hinglish"). A language model does this far better than a lookup table,
but it is an unreliable collaborator: free models rate-limit, time out,
or return nothing. This client turns every one of those outcomes into a
single TransformationError so the caller can fall back locally.

HOW: One async context manager around httpx.AsyncClient with Bearer
auth, and one method, complete(), that sends a system + user message pair
and returns the first choice's text.

RULES:
- Transport errors, non-2xx responses, malformed JSON and empty content
  all raise TransformationError
- The system prompt asks for identical word count and Latin-script output
- temperature 0.1, max_tokens 800
"""

from __future__ import annotations

import logging

import httpx

from caption_studio.api.models import ChatCompletion
from caption_studio.config import (
    OPENROUTER_BASE_URL,
    OPENROUTER_MODEL,
    OPENROUTER_REFERER,
    load_openrouter_key,
)

logger = logging.getLogger(__name__)

HINGLISH_SYSTEM_PROMPT = (
    "Convert Hindi text to Hinglish (Roman script). Rules: "
    "1) Convert Hindi to phonetic Roman letters "
    "2) Keep English words same "
    "3) Same word count "
    "4) Return only converted text. "
    "Examples: नमस्ते→Namaste, अच्छा→Accha, मैं→Main"
)


class TransformationError(Exception):
    """Raised when the text-transformation collaborator gives no usable text.

    Always recovered by the caller; never surfaced to HTTP clients.
    """


class OpenRouterClient:
    """Async chat-completion client.

    RULES:
    - Use as: async with OpenRouterClient() as client: ...
    - api_key defaults to load_openrouter_key() (ConfigurationError if unset)
    - model defaults to OPENROUTER_MODEL (MODEL_NAME env var)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_openrouter_key()
        self._base_url = (base_url or OPENROUTER_BASE_URL).rstrip("/")
        self.model = model or OPENROUTER_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> OpenRouterClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "HTTP-Referer": OPENROUTER_REFERER,
                "X-Title": "Hindi to Hinglish Converter",
            },
            timeout=httpx.Timeout(60.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "OpenRouterClient must be used as an async context manager: "
                "async with OpenRouterClient() as client: ..."
            )
        return self._client

    async def complete(self, text: str, system_prompt: str = HINGLISH_SYSTEM_PROMPT) -> str:
        """Send one system/user exchange and return the completion text.

        Raises:
            TransformationError: on any transport, status, or content failure.
        """
        client = self._ensure_client()
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            "temperature": 0.1,
            "max_tokens": 800,
        }

        try:
            resp = await client.post("/chat/completions", json=body)
        except httpx.HTTPError as exc:
            raise TransformationError(f"OpenRouter request failed: {exc}") from exc

        if resp.status_code != 200:
            raise TransformationError(
                f"OpenRouter API error {resp.status_code}: {resp.text[:200]}"
            )

        try:
            completion = ChatCompletion.from_dict(resp.json())
        except (ValueError, AttributeError) as exc:
            raise TransformationError(f"Malformed OpenRouter response: {exc}") from exc

        if not completion.content:
            raise TransformationError("No response content from OpenRouter API")

        return completion.content
