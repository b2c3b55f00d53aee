"""
Gemini text-generation client with bounded retry and exponential backoff.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from llm.prompts import (
    build_feed_summary_prompt,
    build_post_summary_prompt,
    build_reply_suggestions_prompt,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class MissingCredentialError(RuntimeError):
    """Raised when no Gemini API key is configured."""


class CompletionFailureError(RuntimeError):
    """Raised after every completion attempt failed."""


@dataclass(frozen=True)
class CompletionConfig:
    api_key: str
    model: str = "gemini-2.0-flash-exp"
    api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    timeout_seconds: float = 30.0
    max_attempts: int = 3
    backoff_base_seconds: float = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential delay schedule (1s, 2s, 4s, ...)."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * (2 ** attempt)

    def delays(self) -> List[float]:
        """Delays slept between attempts; nothing follows the final attempt."""
        return [self.delay_for(attempt) for attempt in range(max(self.max_attempts - 1, 0))]


def extract_generated_text(payload: Any) -> Optional[str]:
    """Return candidates[0].content.parts[0].text when present and non-empty."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text.strip():
        return None
    return text


class CompletionClient:
    """Client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        config: CompletionConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.config = config
        self.policy = RetryPolicy(
            max_attempts=max(int(config.max_attempts), 1),
            base_delay_seconds=float(config.backoff_base_seconds),
        )
        self._transport = transport
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_url}/{self.config.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        """Generate text for a prompt, retrying failed attempts with backoff."""
        if not self.config.api_key:
            raise MissingCredentialError("GEMINI_API_KEY not configured")

        body = {"contents": [{"parts": [{"text": prompt}]}]}
        last_error: Optional[Exception] = None

        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            for attempt in range(self.policy.max_attempts):
                try:
                    response = await client.post(
                        self.endpoint,
                        params={"key": self.config.api_key},
                        json=body,
                        headers={"Content-Type": "application/json"},
                    )
                    response.raise_for_status()
                    text = extract_generated_text(response.json())
                    if text is None:
                        raise ValueError("Invalid response format from Gemini API")
                    return text
                except (httpx.HTTPError, ValueError) as exc:
                    last_error = exc
                    if attempt == self.policy.max_attempts - 1:
                        break
                    delay = self.policy.delay_for(attempt)
                    logger.warning(
                        "Gemini attempt %s/%s failed, retrying in %.1fs: %s",
                        attempt + 1,
                        self.policy.max_attempts,
                        delay,
                        exc,
                    )
                    await self._sleep(delay)

        logger.error("Gemini API failed after %s attempts: %s", self.policy.max_attempts, last_error)
        raise CompletionFailureError(f"Gemini API error: {last_error or 'Unknown error'}")

    async def summarize_feed(self, posts: Iterable[Dict[str, Any]]) -> str:
        return await self.complete(build_feed_summary_prompt(posts))

    async def summarize_post(self, text: str) -> str:
        return await self.complete(build_post_summary_prompt(text))

    async def suggest_replies(self, text: str) -> str:
        return await self.complete(build_reply_suggestions_prompt(text))
