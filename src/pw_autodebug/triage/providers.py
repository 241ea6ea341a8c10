"""AI backends used to analyse failed tests."""

import json
from abc import ABC, abstractmethod
from typing import Any

import httpx
from google import genai
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import AIConfig
from .prompts import build_messages, build_user_message

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class AIProviderError(Exception):
    """An AI backend could not produce an answer."""


def is_retryable(exc: BaseException) -> bool:
    """Transport errors, rate limits and server errors are worth retrying."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS
    return isinstance(exc, httpx.TransportError)


class AIProvider(ABC):
    """Abstract base class for AI backends."""

    name: str = "ai"

    def __init__(self, config: AIConfig):
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    async def generate_response(self, prompt: str, dom_snapshot: str | None = None) -> str:
        """
        Ask the backend to analyse ``prompt``.

        Returns:
            The answer text, stripped.

        Raises:
            AIProviderError: if the backend fails or answers with nothing.
        """

    async def aclose(self) -> None:
        """Release network resources."""


class ChatCompletionsProvider(AIProvider):
    """OpenAI-compatible ``/chat/completions`` backend (Mistral, OpenAI, local servers)."""

    name = "chat"

    def __init__(
        self,
        config: AIConfig,
        client: httpx.AsyncClient | None = None,
        retry_wait=None,
    ):
        super().__init__(config)
        self.client = client or httpx.AsyncClient(timeout=config.timeout)
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=10)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, dom_snapshot: str | None = None) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": build_messages(prompt, self.config.messages, dom_snapshot),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "stream": self.config.stream,
        }

    async def generate_response(self, prompt: str, dom_snapshot: str | None = None) -> str:
        if not self.config.api_key:
            raise AIProviderError("API key is required: set API_KEY or ai.api_key in the config file")

        payload = self.build_payload(prompt, dom_snapshot)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries),
                wait=self.retry_wait,
                retry=retry_if_exception(is_retryable),
                reraise=True,
            ):
                with attempt:
                    if self.config.stream:
                        text = await self._stream(payload)
                    else:
                        text = await self._complete(payload)
        except httpx.HTTPStatusError as e:
            raise AIProviderError(
                f"{self.config.ai_server} answered {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise AIProviderError(f"Unable to reach {self.config.ai_server}: {e}") from e

        if not text:
            raise AIProviderError("No response content returned by the AI server")

        return text

    async def _complete(self, payload: dict[str, Any]) -> str:
        response = await self.client.post(self.config.ai_server, headers=self.headers, json=payload)
        response.raise_for_status()
        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message", {}).get("content") or "").strip()

    async def _stream(self, payload: dict[str, Any]) -> str:
        """Collect the ``data:`` chunks of a server-sent event stream."""
        parts: list[str] = []
        async with self.client.stream(
            "POST", self.config.ai_server, headers=self.headers, json=payload
        ) as response:
            if response.is_error:
                await response.aread()
            response.raise_for_status()
            async for line in response.aiter_lines():
                line = line.strip()
                if not line.startswith("data: "):
                    continue
                data = line[6:].strip()
                if data == "[DONE]":
                    break
                try:
                    chunk = json.loads(data)
                    delta = chunk.get("choices", [{}])[0].get("delta", {}).get("content") or ""
                except (json.JSONDecodeError, IndexError, AttributeError):
                    logger.debug(f"Skipping malformed stream chunk: {data[:80]}")
                    continue
                parts.append(delta)
        return "".join(parts).strip()

    async def aclose(self) -> None:
        await self.client.aclose()


class GeminiProvider(AIProvider):
    """Google Gemini backend via google-genai."""

    name = "gemini"

    def __init__(
        self,
        config: AIConfig,
        client: Any = None,
        retry_wait=None,
    ):
        super().__init__(config)
        self._client = client
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=10)

    @property
    def client(self):
        if self._client is None:
            # Falls back to GOOGLE_API_KEY / GEMINI_API_KEY when no key is configured
            self._client = genai.Client(api_key=self.config.api_key) if self.config.api_key else genai.Client()
        return self._client

    async def generate_response(self, prompt: str, dom_snapshot: str | None = None) -> str:
        system = "\n\n".join(m["content"] for m in self.config.messages if m.get("role") == "system")
        contents = build_user_message(prompt, dom_snapshot)
        if system:
            contents = f"{system}\n\n{contents}"

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries),
                wait=self.retry_wait,
                reraise=True,
            ):
                with attempt:
                    response = await self.client.aio.models.generate_content(
                        model=self.config.model,
                        contents=contents,
                    )
        except Exception as e:
            raise AIProviderError(f"Gemini request failed: {e}") from e

        text = (response.text or "").strip()
        if not text:
            raise AIProviderError("Gemini returned an empty answer")

        return text


def create_provider(config: AIConfig) -> AIProvider:
    """Pick the backend named by ``config.provider``."""
    if config.provider == "gemini":
        return GeminiProvider(config)
    return ChatCompletionsProvider(config)
