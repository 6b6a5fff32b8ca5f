"""
Small stand-ins for the generation core's collaborators.

Each records how it was called so tests can assert on interaction as
well as on results.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from docgen.app.errors import DownloadFailed, PersistFailed, RenderFailed
from docgen.app.events import GenerationEvent
from docgen.app.schemas.request_tree import RequestTree
from docgen.app.templates.address import ParsedAddress
from docgen.app.templates.downloaders.base import atomic_write


# ---------------------------------------------------------------------------
# Downloaders
# ---------------------------------------------------------------------------


class StubDownloader:
    def __init__(
        self,
        protocols: Tuple[str, ...] = ("stub",),
        content: bytes = b"template body",
        fail: bool = False,
    ) -> None:
        self.protocols = protocols
        self.content = content
        self.fail = fail
        self.calls: List[Tuple[str, Path]] = []

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        self.calls.append((address.raw, target))
        if self.fail:
            raise DownloadFailed(address.raw, "stub transport error")
        with atomic_write(target) as handle:
            handle.write(self.content)


class SilentDownloader(StubDownloader):
    """Claims success but writes nothing."""

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        self.calls.append((address.raw, target))


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class StubResolver:
    """Returns addresses unchanged; fails for addresses listed in ``failing``."""

    def __init__(self, failing: Optional[Mapping[str, Exception]] = None) -> None:
        self.failing = dict(failing or {})
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def resolve(self, address: str) -> str:
        with self._lock:
            self.calls.append(address)
        if address in self.failing:
            raise self.failing[address]
        return address


# ---------------------------------------------------------------------------
# Render engines
# ---------------------------------------------------------------------------


class RecordingEngine:
    """
    Renders ``<template>|<sorted binding keys>`` as bytes.

    ``delays`` maps template -> seconds to sleep before returning, to force
    out-of-order completion in batch tests.
    """

    def __init__(
        self,
        label: str = "engine",
        delays: Optional[Mapping[str, float]] = None,
        fail_on: Tuple[str, ...] = (),
        crash_on: Tuple[str, ...] = (),
    ) -> None:
        self.label = label
        self.delays = dict(delays or {})
        self.fail_on = fail_on
        self.crash_on = crash_on
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def render(
        self,
        *,
        template: str,
        bindings: Mapping[str, Any],
        assets: Mapping[str, bytes],
    ) -> bytes:
        with self._lock:
            self.calls.append(
                {"template": template, "bindings": dict(bindings), "assets": dict(assets)}
            )
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(template, 0.0))
            if template in self.fail_on:
                raise RenderFailed(f"cannot render {template}")
            if template in self.crash_on:
                raise ZeroDivisionError("engine bug")
            keys = ",".join(sorted(bindings))
            return f"{self.label}:{template}|{keys}".encode("utf-8")
        finally:
            with self._lock:
                self.active -= 1


# ---------------------------------------------------------------------------
# Blob store
# ---------------------------------------------------------------------------


class FakeStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.persisted: List[Path] = []
        self._lock = threading.Lock()

    def persist(self, local_path: Path) -> str:
        if self.fail:
            raise PersistFailed("bucket unavailable")
        with self._lock:
            self.persisted.append(local_path)
        return f"blob@documents:generated/{local_path.name}"


class FakeS3Client:
    """In-memory subset of the boto3 S3 client API."""

    def __init__(
        self,
        objects: Optional[Dict[Tuple[str, str], bytes]] = None,
        upload_failures: int = 0,
    ) -> None:
        self.objects: Dict[Tuple[str, str], bytes] = dict(objects or {})
        self.uploads: List[Dict[str, Any]] = []
        self.upload_failures = upload_failures
        self.upload_attempts = 0

    def download_fileobj(self, bucket: str, key: str, fileobj: Any) -> None:
        try:
            body = self.objects[(bucket, key)]
        except KeyError:
            raise ClientError(
                {"Error": {"Code": "404", "Message": "Not Found"}},
                "HeadObject",
            ) from None
        half = len(body) // 2
        fileobj.write(body[:half])
        fileobj.write(body[half:])

    def upload_file(
        self,
        filename: str,
        bucket: str,
        key: str,
        ExtraArgs: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.upload_attempts += 1
        if self.upload_attempts <= self.upload_failures:
            # boto3 wraps the transfer's ClientError before it reaches the caller
            raise S3UploadFailedError(
                f"Failed to upload {filename} to {bucket}/{key}: An error occurred "
                "(SlowDown) when calling the PutObject operation: Please reduce your request rate"
            )
        self.objects[(bucket, key)] = Path(filename).read_bytes()
        self.uploads.append({"bucket": bucket, "key": key, "extra_args": ExtraArgs or {}})


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class RecordingEmitter:
    def __init__(self) -> None:
        self.events: List[GenerationEvent] = []

    async def emit(self, event: GenerationEvent) -> None:
        self.events.append(event)


# ---------------------------------------------------------------------------
# Request trees
# ---------------------------------------------------------------------------


def template_item(
    location: Optional[str],
    *,
    data: Optional[Dict[str, Any]] = None,
    output_format: str = "txt",
    persist: Optional[bool] = None,
) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "type": "template",
        "resource": {
            "input_format": "txt",
            "output_format": output_format,
            "location": location,
            "data": {"name": "Ada"} if data is None else data,
        },
        "result": {"location": None},
    }
    if persist is not None:
        item["persist"] = persist
    return item


def static_item(location: str = "static/cover.pdf") -> Dict[str, Any]:
    return {
        "type": "attachment",
        "resource": {"location": location},
        "result": {"location": None},
    }


def build_tree(*groups: List[Dict[str, Any]]) -> RequestTree:
    return RequestTree.model_validate(
        {
            "outputs": [
                {"type": f"group-{index}", "composition": items}
                for index, items in enumerate(groups)
            ]
        }
    )
