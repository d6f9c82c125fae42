"""Thin wrapper around the OpenAI SDK.

Purpose:
- Encapsulate chat, vision and transcription calls so domain code doesn't
  import openai.* directly.
- Apply one timeout/retry policy to every call.
- Never log prompts, model answers or media URLs (only models and sizes).
"""

from __future__ import annotations

import os
from typing import Any

from openai import APITimeoutError, AsyncOpenAI

from mari.infra.settings import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_TRANSCRIPTION_MODEL,
    Settings,
)
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

# SDK-level retries; the domain applies its own deadline on top
MAX_RETRIES = 1


class LanguageModelUnavailableError(Exception):
    """Language model backend is not configured."""


class LanguageModelTimeoutError(TimeoutError):
    """Language model backend did not answer within the request timeout."""


class LanguageModelClient:
    """Async wrapper for the chat, vision and transcription endpoints.

    Usage:
        client = LanguageModelClient()  # reads OPENAI_API_KEY from env
        raw = await client.complete(messages, json_mode=True)
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        chat_model: str = DEFAULT_CHAT_MODEL,
        vision_model: str = DEFAULT_CHAT_MODEL,
        transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL,
        timeout: float = 15.0,
        sdk_client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: OpenAI key. Defaults to OPENAI_API_KEY env var.
            chat_model: Model used for intent classification.
            vision_model: Model used to describe images.
            transcription_model: Model used to transcribe audio.
            timeout: Per-request timeout in seconds.
            sdk_client: Pre-built SDK client (tests).

        Raises:
            LanguageModelUnavailableError: If no API key is available.
        """
        if sdk_client is None:
            api_key = api_key or os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise LanguageModelUnavailableError(
                    "OpenAI API key not provided. "
                    "Set OPENAI_API_KEY or pass api_key parameter."
                )
            sdk_client = AsyncOpenAI(
                api_key=api_key, timeout=timeout, max_retries=MAX_RETRIES
            )
        self._client = sdk_client
        self.chat_model = chat_model
        self.vision_model = vision_model
        self.transcription_model = transcription_model

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        json_mode: bool = False,
        temperature: float = 0.2,
        max_tokens: int = 400,
    ) -> str | None:
        """Run a chat completion and return the first choice's text.

        Raises:
            LanguageModelTimeoutError: If the SDK request timed out.
            openai.APIError: On any other API or transport failure.
        """
        params: dict[str, Any] = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**params)
        except APITimeoutError as exc:
            raise LanguageModelTimeoutError("chat completion timed out") from exc

        logger.debug(
            "chat completion finished",
            extra={
                "extra_fields": safe_log_context(
                    model=self.chat_model,
                    turns=len(messages),
                    json_mode=json_mode,
                )
            },
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def describe_image(
        self, image_url: str, instruction: str, *, max_tokens: int = 300
    ) -> str | None:
        """Ask the vision model about an image reachable at image_url."""
        response = await self._client.chat.completions.create(
            model=self.vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            max_tokens=max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def transcribe(self, audio: bytes, filename: str) -> str:
        """Transcribe audio file content. The backend needs bytes, not a URL."""
        transcription = await self._client.audio.transcriptions.create(
            model=self.transcription_model,
            file=(filename, audio),
        )
        logger.debug(
            "audio transcribed",
            extra={
                "extra_fields": safe_log_context(
                    model=self.transcription_model,
                    audio_bytes=len(audio),
                )
            },
        )
        return transcription.text


def build_llm_client(settings: Settings) -> LanguageModelClient | None:
    """Build the client from settings, or None when the backend is unconfigured."""
    if not settings.llm_configured:
        logger.warning(
            "OPENAI_API_KEY not set - language model features run degraded",
            extra={"extra_fields": safe_log_context(environment=settings.environment)},
        )
        return None
    return LanguageModelClient(
        settings.openai_api_key,
        chat_model=settings.chat_model,
        vision_model=settings.vision_model,
        transcription_model=settings.transcription_model,
        timeout=settings.llm_timeout_seconds,
    )
