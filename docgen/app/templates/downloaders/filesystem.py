"""
Same-host filesystem "downloader".

Handles ``file@/path/to/template`` and ``fs@/path/to/template``. Useful
for network file systems, shared container volumes and local development
with absolute paths.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Tuple

from docgen.app.errors import DownloadFailed
from docgen.app.templates.address import ParsedAddress
from docgen.app.templates.downloaders.base import atomic_write

logger = logging.getLogger(__name__)


class FileSystemTemplateDownloader:
    protocols: Tuple[str, ...] = ("file", "fs")

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        source = Path(address.payload)
        logger.info("Copying template from filesystem: %s", source.name)

        if not source.is_file():
            raise DownloadFailed(address.raw, f"source file not found: {source}")

        if not os.access(source, os.R_OK):
            raise DownloadFailed(address.raw, f"cannot read source file: {source}")

        try:
            with source.open("rb") as src, atomic_write(target) as dst:
                shutil.copyfileobj(src, dst)
        except OSError as exc:
            logger.exception("Failed to copy template from filesystem: %s", source.name)
            raise DownloadFailed(address.raw, str(exc)) from exc

        logger.info(
            "Copied %d bytes from %s to %s",
            target.stat().st_size,
            source.name,
            target.name,
        )
