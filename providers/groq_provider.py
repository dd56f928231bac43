"""
Groq provider — Llama models via Groq's OpenAI-compatible API.

Groq offers extremely fast inference (LPU hardware).
Get a free API key at console.groq.com

The image reference (public URL or data URI) travels as plain text in the
user message; the model never fetches it.
"""
from __future__ import annotations

from providers.openai_provider import OpenAIProvider

_GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class GroqProvider(OpenAIProvider):

    default_model = "llama3-70b-8192"
    base_url = _GROQ_BASE_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "groq"
