"""
HTTP(S) template downloader.

Handles ``http@<url>`` and ``https@<url>``; the payload after the tag is
the actual URL, e.g. ``https@https://example.com/templates/report.html``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import httpx

from docgen.app.errors import DownloadFailed
from docgen.app.templates.address import ParsedAddress
from docgen.app.templates.downloaders.base import atomic_write

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class HttpTemplateDownloader:
    protocols: Tuple[str, ...] = ("http", "https")

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        # A caller-supplied client keeps its own transport and timeouts.
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._client = client

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        url = address.payload
        if not url.lower().startswith(("http://", "https://")):
            raise DownloadFailed(
                address.raw, "payload after the tag must be an http(s) URL"
            )

        logger.info("Downloading template over HTTP(S): %s", target.name)

        try:
            if self._client is not None:
                total = self._stream(self._client, url, target)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    total = self._stream(client, url, target)
        except httpx.HTTPStatusError as exc:
            raise DownloadFailed(
                address.raw,
                f"HTTP error {exc.response.status_code}",
            ) from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.exception("Failed to download template over HTTP(S)")
            raise DownloadFailed(address.raw, str(exc)) from exc

        logger.info("Downloaded %d bytes to %s", total, target.name)

    @staticmethod
    def _stream(client: httpx.Client, url: str, target: Path) -> int:
        total = 0
        with client.stream("GET", url, follow_redirects=True) as response:
            response.raise_for_status()
            if response.status_code != httpx.codes.OK:
                raise httpx.HTTPStatusError(
                    f"Unexpected status {response.status_code}",
                    request=response.request,
                    response=response,
                )
            with atomic_write(target) as handle:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    handle.write(chunk)
                    total += len(chunk)
        return total
