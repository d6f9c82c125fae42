"""Bounded download of media attachments.

Transcription backends accept file content, so audio has to be fetched
before it can be interpreted.
"""

from __future__ import annotations

from urllib.parse import urlparse

import httpx

from mari.infra.settings import DEFAULT_MEDIA_MAX_BYTES


class MediaDownloadError(Exception):
    """Media could not be fetched within the configured limits."""


class MediaDownloader:
    """Streams a remote file into memory, enforcing a size limit."""

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        max_bytes: int = DEFAULT_MEDIA_MAX_BYTES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        """Download url and return its bytes.

        Raises:
            MediaDownloadError: On a non-http(s) URL or when the body exceeds
                max_bytes.
            httpx.HTTPError: On network or HTTP status errors.
        """
        if urlparse(url).scheme not in ("http", "https"):
            raise MediaDownloadError("unsupported media url scheme")

        data = bytearray()
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    data.extend(chunk)
                    if len(data) > self._max_bytes:
                        raise MediaDownloadError("media exceeds size limit")
        return bytes(data)


def guess_filename(url: str, default: str = "audio.ogg") -> str:
    """Derive an upload filename (with extension) from the media URL."""
    name = urlparse(url).path.rsplit("/", 1)[-1]
    if name and "." in name:
        return name
    return default
