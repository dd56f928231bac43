"""
Anthropic Messages API provider.

The system prompt goes in the top-level `system` field; the completion is the
first text block of `message.content`. A reply without any text block is a
malformed envelope.
"""
from __future__ import annotations

import logging
from typing import Optional

import anthropic

from errors import MalformedServiceResponseError, ServiceUnavailableError
from providers.base import TextProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(TextProvider):

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: Optional[float] = None,
    ):
        self.name       = "anthropic"
        self.model_id   = model or "claude-3-haiku-20240307"
        self.max_tokens = max_tokens
        self.timeout    = timeout
        self._client    = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def _chat(self, system_prompt: str, user_text: str, model: str) -> str:
        try:
            message = await self._client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_text}],
            )
        except anthropic.APIStatusError as exc:
            logger.error("[anthropic/%s] HTTP %s: %s", model, exc.status_code, exc.message)
            raise ServiceUnavailableError(f"anthropic API error: {exc.message}") from exc
        except anthropic.APIError as exc:
            logger.error("[anthropic/%s] request failed: %s", model, exc)
            raise ServiceUnavailableError(f"anthropic API unreachable: {exc}") from exc

        for block in getattr(message, "content", None) or []:
            if getattr(block, "type", None) == "text":
                return block.text or ""
        logger.error("[anthropic/%s] no text block in response: %r", model, message)
        raise MalformedServiceResponseError("Invalid response format from anthropic API")
