"""
OpenAI client utilities for the Chat Backend.

This module centralizes OpenAI API access. One client is constructed at
application startup from settings, shared by every request and closed at
shutdown. Upstream failures are classified into typed service errors.
"""

import logging
from typing import List, Dict, Any, Optional

import httpx
from pydantic import BaseModel, Field

from .errors import ProviderAuthFailure, ProviderError, ProviderTimeout, RateLimited

logger = logging.getLogger("uvicorn.error")


class ChatCompletion(BaseModel):
    """Assistant reply returned by the provider."""
    content: str = Field(..., description="Assistant text")
    model: str = Field(..., description="Model that produced the reply")
    prompt_tokens: int = Field(default=0, description="Tokens consumed by the request messages")
    completion_tokens: int = Field(default=0, description="Tokens in the reply")


# PUBLIC_INTERFACE
class OpenAIChatClient:
    """Thin wrapper around the OpenAI chat completions endpoint.

    Args:
        api_key: OpenAI API key; an empty key makes every call fail with ProviderError.
        base_url: OpenAI API base URL (override for proxies).
        timeout: Seconds to wait for a completion before raising ProviderTimeout.
        http_client: Optional preconfigured httpx.Client (tests pass one with a mock transport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    # PUBLIC_INTERFACE
    def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = 1000,
    ) -> ChatCompletion:
        """Perform a chat completion request.

        Args:
            messages: List of {role: 'user'|'assistant', content: str}
            model: Model name.
            temperature: Sampling temperature.
            max_tokens: Optional cap for output tokens.

        Raises:
            ProviderAuthFailure: The provider rejected the API key (401).
            RateLimited: The provider throttled the request (429).
            ProviderTimeout: No response within the configured timeout.
            ProviderError: Missing key, network failure or any other upstream error.
        """
        if not self.api_key:
            logger.error("OPENAI_API_KEY is missing. Set it in your environment to enable chat.")
            raise ProviderError("AI service is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        try:
            resp = self._client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error("OpenAI request timed out: %s", str(e))
            raise ProviderTimeout() from e
        except httpx.RequestError as e:
            logger.exception("Network error while calling OpenAI: %s", str(e))
            raise ProviderError() from e

        if resp.status_code == 401:
            logger.error("OpenAI authentication failed (401). Check OPENAI_API_KEY validity.")
            raise ProviderAuthFailure()
        if resp.status_code == 429:
            logger.warning("OpenAI rate limit hit (429)")
            raise RateLimited()
        if resp.status_code >= 400:
            logger.error(f"OpenAI API error {resp.status_code}: {resp.text}")
            raise ProviderError()

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected OpenAI response body: {resp.text}")
            raise ProviderError() from e

        usage = data.get("usage") or {}
        return ChatCompletion(
            content=content,
            model=data.get("model", model),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
        )
