"""
OpenAI chat-completions provider.

Also the base for every OpenAI-compatible endpoint (see groq_provider.py):
only the base URL and default model differ.

Request:   {model, messages: [system, user], max_tokens}
Response:  choices[0].message.content
"""
from __future__ import annotations

import logging
from typing import Optional

import openai

from errors import MalformedServiceResponseError, ServiceUnavailableError
from providers.base import TextProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(TextProvider):

    default_model = "gpt-4o-mini"
    base_url: Optional[str] = None

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: Optional[float] = None,
    ):
        self.name       = "openai"
        self.model_id   = model or self.default_model
        self.max_tokens = max_tokens
        self.timeout    = timeout
        # Retries are the caller's decision, never the SDK's
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            max_retries=0,
        )

    async def _chat(self, system_prompt: str, user_text: str, model: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user",   "content": user_text},
                ],
            )
        except openai.APIStatusError as exc:
            logger.error("[%s/%s] HTTP %s: %s", self.name, model, exc.status_code, exc.message)
            raise ServiceUnavailableError(
                f"{self.name} API error: {exc.message or f'HTTP status {exc.status_code}'}"
            ) from exc
        except openai.APIError as exc:
            # APIConnectionError / APITimeoutError and friends
            logger.error("[%s/%s] request failed: %s", self.name, model, exc)
            raise ServiceUnavailableError(f"{self.name} API unreachable: {exc}") from exc

        choices = getattr(response, "choices", None)
        message = choices[0].message if choices else None
        if message is None:
            logger.error("[%s/%s] unexpected response format: %r", self.name, model, response)
            raise MalformedServiceResponseError(f"Invalid response format from {self.name} API")
        return message.content or ""
