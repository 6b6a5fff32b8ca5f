"""
S3 blob-store template downloader.

Handles ``blob@bucket:key`` and ``s3@bucket:key``. An empty bucket
(``blob@:key``) selects the configured templates bucket.

Example:
    blob@acme-templates:2.0/contracts/lease.tex
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from docgen.app.errors import DownloadFailed
from docgen.app.templates.address import ParsedAddress
from docgen.app.templates.downloaders.base import atomic_write

logger = logging.getLogger(__name__)


class BlobTemplateDownloader:
    protocols: Tuple[str, ...] = ("blob", "s3")

    def __init__(
        self,
        s3_client: Any,
        *,
        default_bucket: Optional[str] = None,
    ) -> None:
        self._s3 = s3_client
        self._default_bucket = default_bucket

    def parse(self, address: ParsedAddress) -> Tuple[str, str]:
        """Return ``(bucket, key)`` for a blob address."""
        bucket, key = address.split_authority()
        bucket = bucket or (self._default_bucket or "")
        key = key.lstrip("/")

        if not bucket:
            raise DownloadFailed(
                address.raw,
                "no bucket in address and no default templates bucket configured",
            )
        if not key:
            raise DownloadFailed(address.raw, "object key is empty")

        return bucket, key

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        bucket, key = self.parse(address)
        logger.info("Downloading template from S3: %s", Path(key).name)
        logger.debug("Parsed S3 address - bucket: %s, key: %s", bucket, key)

        try:
            with atomic_write(target) as handle:
                self._s3.download_fileobj(bucket, key, handle)
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.exception("Failed to download template from S3")
            raise DownloadFailed(address.raw, str(exc)) from exc

        logger.info(
            "Downloaded %d bytes from S3 to %s",
            target.stat().st_size,
            target.name,
        )
