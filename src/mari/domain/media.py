"""Media interpretation: turn the first attachment into text.

Failures here are never fatal. Each handler converts upstream errors and
timeouts into a fixed fallback sentence the classifier can still work with.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from mari.domain.messages import ATTACHMENT_AUDIO, ATTACHMENT_IMAGE, Attachment
from mari.infra.media_download import MediaDownloader, guess_filename
from mari.llm.client import LanguageModelClient
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

IMAGE_INSTRUCTION = "Descreva a imagem e sugira um produto relacionado."
IMAGE_FALLBACK = "Não foi possível interpretar a imagem."
VISION_UNCONFIGURED = "Serviço de visão não configurado."

AUDIO_FALLBACK = "Não foi possível transcrever o áudio."
TRANSCRIPTION_UNCONFIGURED = "Serviço de transcrição não configurado."


@dataclass(frozen=True)
class MediaInterpretation:
    text: str | None = None


class MediaInterpreter:
    """Interprets attachments by kind. Only the first attachment is used."""

    def __init__(
        self,
        llm: LanguageModelClient | None,
        downloader: MediaDownloader,
        *,
        timeout: float = 15.0,
    ) -> None:
        self._llm = llm
        self._downloader = downloader
        self._timeout = timeout
        self._handlers: dict[str, Callable[[str], Awaitable[str]]] = {
            ATTACHMENT_IMAGE: self._interpret_image,
            ATTACHMENT_AUDIO: self._interpret_audio,
        }

    async def interpret(
        self, attachments: Sequence[Attachment] | None
    ) -> MediaInterpretation:
        if not attachments:
            return MediaInterpretation()

        first = attachments[0]
        handler = self._handlers.get(first.type)

        logger.info(
            "interpreting media",
            extra={
                "extra_fields": safe_log_context(
                    attachment_type=first.type,
                    attachment_count=len(attachments),
                    supported=handler is not None,
                )
            },
        )

        if handler is None:
            return MediaInterpretation()
        return MediaInterpretation(text=await handler(first.url))

    async def _interpret_image(self, url: str) -> str:
        if self._llm is None:
            return VISION_UNCONFIGURED
        try:
            description = await asyncio.wait_for(
                self._llm.describe_image(url, IMAGE_INSTRUCTION),
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning(
                "image interpretation failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return IMAGE_FALLBACK
        return description or IMAGE_FALLBACK

    async def _interpret_audio(self, url: str) -> str:
        if self._llm is None:
            return TRANSCRIPTION_UNCONFIGURED
        # One deadline covers download and transcription together
        try:
            transcript = await asyncio.wait_for(
                self._download_and_transcribe(url), timeout=self._timeout
            )
        except Exception as e:
            logger.warning(
                "audio interpretation failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return AUDIO_FALLBACK

        transcript = (transcript or "").strip()
        if not transcript:
            return AUDIO_FALLBACK
        return f'O usuário disse: "{transcript}"'

    async def _download_and_transcribe(self, url: str) -> str:
        audio = await self._downloader.fetch(url)
        return await self._llm.transcribe(audio, guess_filename(url))
