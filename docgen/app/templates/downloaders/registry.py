"""
Downloader registry.

Selects the downloader for an address by its scheme tag. The registry is
populated from an explicit list at startup; there is no discovery.

To add a protocol: implement TemplateDownloader and add an instance to
the list passed in by the composition root.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from docgen.app.errors import UnsupportedScheme
from docgen.app.templates.address import ParsedAddress
from docgen.app.templates.downloaders.base import TemplateDownloader

logger = logging.getLogger(__name__)


class DownloaderRegistry:
    def __init__(self, downloaders: Sequence[TemplateDownloader]) -> None:
        self._downloaders: List[TemplateDownloader] = list(downloaders)

        for downloader in self._downloaders:
            logger.info(
                "Registered template downloader: %s for protocols: %s",
                type(downloader).__name__,
                ", ".join(downloader.protocols),
            )

        if not self._downloaders:
            logger.warning("No template downloaders registered!")

    def dispatch(self, address: ParsedAddress) -> TemplateDownloader:
        """
        Return the single downloader declaring ``address.scheme``.

        Raises:
            UnsupportedScheme: no registered downloader handles the scheme.
        """
        if address.scheme is not None:
            for downloader in self._downloaders:
                if address.scheme in downloader.protocols:
                    logger.debug(
                        "Selected downloader: %s for scheme: %s",
                        type(downloader).__name__,
                        address.scheme,
                    )
                    return downloader

        raise UnsupportedScheme(address.raw, self.supported_protocols())

    def supports(self, address: ParsedAddress) -> bool:
        return address.scheme in self.supported_protocols()

    def supported_protocols(self) -> List[str]:
        seen: List[str] = []
        for downloader in self._downloaders:
            for protocol in downloader.protocols:
                if protocol not in seen:
                    seen.append(protocol)
        return seen
