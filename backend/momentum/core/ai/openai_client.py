"""
Momentum - OpenAI Client
========================

Thin async client for the chat-completion and embeddings endpoints.
"""

from typing import Any, Optional

import httpx
import structlog

from momentum.core.config import settings

logger = structlog.get_logger()


class OpenAIError(Exception):
    """Upstream call failed or returned something unusable."""


class OpenAINotConfiguredError(OpenAIError):
    """No API key configured."""

    def __init__(self, message: str = "OpenAI API key is not set"):
        super().__init__(message)


Message = dict[str, str]


class OpenAIClient:
    """
    Client for the OpenAI REST API.

    Pass `transport` to route requests elsewhere (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.api_url = (api_url or settings.OPENAI_API_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.OPENAI_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OpenAIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ==================== Transport ====================

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.enabled:
            raise OpenAINotConfiguredError()

        try:
            response = await self._client.post(
                f"{self.api_url}{path}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error("openai_request_failed", path=path, error=str(e))
            raise OpenAIError(f"OpenAI request failed: {e}") from e

        if response.status_code >= 400:
            message = "Unknown error"
            try:
                message = response.json().get("error", {}).get("message") or message
            except (ValueError, AttributeError):
                pass
            logger.warning(
                "openai_error_response",
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise OpenAIError(f"OpenAI API error: {message}")

        try:
            return response.json()
        except ValueError as e:
            raise OpenAIError("OpenAI returned invalid JSON") from e

    # ==================== Endpoints ====================

    async def chat_completion(
        self,
        messages: list[Message],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> str:
        """Content of the first choice."""
        payload: dict[str, Any] = {
            "model": model or settings.OPENAI_CHAT_MODEL,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post("/chat/completions", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OpenAIError("Unexpected chat completion response") from e

        if not isinstance(content, str):
            raise OpenAIError("Empty chat completion")

        logger.debug("openai_chat_completion", model=payload["model"], chars=len(content))
        return content

    async def create_embedding(self, text: str, model: Optional[str] = None) -> list[float]:
        data = await self._post("/embeddings", {
            "model": model or settings.OPENAI_EMBEDDING_MODEL,
            "input": text,
        })
        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            raise OpenAIError("Unexpected embedding response") from e

        if not isinstance(embedding, list) or not embedding:
            raise OpenAIError("Empty embedding")
        return [float(x) for x in embedding]
