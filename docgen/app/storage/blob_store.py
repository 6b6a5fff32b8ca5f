"""
Artifact persistence.

Generated artifacts are uploaded to S3 under a date-partitioned key:

    <prefix>/<YYYY>/<MM>/<DD>/<stem>-<uuid4><ext>

The returned location uses the blob address syntax
(``blob@<bucket>:<key>``), so a persisted artifact can itself be used as
a template address.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docgen.app.config import Settings
from docgen.app.errors import PersistFailed

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def persist(self, local_path: Path) -> str:
        ...


def create_s3_client(settings: Settings) -> Any:
    """Build the boto3 S3 client shared by template download and persistence."""
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        config=Config(
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
            retries={"max_attempts": 1},
        ),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class S3DocumentStore:
    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        *,
        prefix: str = "generated-documents",
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._s3 = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._now = now

    def object_key_for(self, local_path: Path) -> str:
        day = self._now().strftime("%Y/%m/%d")
        name = f"{local_path.stem}-{uuid.uuid4()}{local_path.suffix}"
        return f"{self.prefix}/{day}/{name}" if self.prefix else f"{day}/{name}"

    def persist(self, local_path: Path) -> str:
        """
        Upload ``local_path`` and return its ``blob@bucket:key`` location.

        Transient S3 failures are retried; the final failure is raised as
        PersistFailed.
        """
        key = self.object_key_for(local_path)

        try:
            size = local_path.stat().st_size
        except OSError as exc:
            raise PersistFailed(f"Artifact is not readable: {local_path}") from exc

        content_type = (
            mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"
        )
        extra_args: Dict[str, Any] = {
            "ContentType": content_type,
            "Metadata": {
                "original-filename": local_path.name,
                "file-size": str(size),
                "upload-timestamp": self._now().isoformat(),
            },
        }

        logger.info("Uploading artifact to S3: %s -> %s", local_path.name, key)

        try:
            self._upload(local_path, key, extra_args)
        except (BotoCoreError, ClientError, S3UploadFailedError) as exc:
            logger.warning(
                "Artifact upload failed",
                extra={"bucket": self.bucket, "key": key},
            )
            raise PersistFailed(
                f"Failed to upload artifact to s3://{self.bucket}/{key}: {exc}"
            ) from exc

        location = f"blob@{self.bucket}:{key}"
        logger.info("Artifact persisted: %s (%d bytes)", location, size)
        return location

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(
            (BotoCoreError, ClientError, S3UploadFailedError)
        ),
        reraise=True,
    )
    def _upload(self, local_path: Path, key: str, extra_args: Dict[str, Any]) -> None:
        self._s3.upload_file(str(local_path), self.bucket, key, ExtraArgs=extra_args)


def build_document_store(
    settings: Settings,
    s3_client: Optional[Any] = None,
) -> Optional[S3DocumentStore]:
    """Return the configured store, or None when no documents bucket is set."""
    if not settings.documents_bucket:
        logger.info("No documents bucket configured; persistence is unavailable")
        return None

    return S3DocumentStore(
        s3_client if s3_client is not None else create_s3_client(settings),
        settings.documents_bucket,
        prefix=settings.documents_prefix,
    )
