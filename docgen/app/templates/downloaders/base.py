from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterator, Protocol, Tuple

from docgen.app.templates.address import ParsedAddress

logger = logging.getLogger(__name__)


class TemplateDownloader(Protocol):
    """
    Interface for fetching one template address into a local file.

    Implementations must:
    - declare the scheme tags they handle in ``protocols``
    - write exactly one file at ``target`` on success
    - never leave a partially written, readable file at ``target``
    - raise DownloadFailed on any transport error
    """

    protocols: Tuple[str, ...]

    def fetch(self, address: ParsedAddress, target: Path) -> None:
        ...


@contextlib.contextmanager
def atomic_write(target: Path) -> Iterator[BinaryIO]:
    """
    Open a temporary file next to ``target`` for binary writing.

    On normal exit the temporary file is flushed, synced and renamed over
    ``target`` in a single ``os.replace``. On any exception it is removed
    and ``target`` is left untouched.
    """
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".part",
        dir=target.parent,
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise
