"""
Template cache.

One flat directory of downloaded templates. Each entry's file name is the
SHA-256 of the full address string plus the address's original file
extension, so downstream engines can still sniff the format.

Entries are never mutated in place. A refresh is a fresh download to the
same deterministic path, written atomically by the downloader.

Freshness is judged from the file's modification time. Downloads always
land via an atomic rename of a newly written file, so the mtime is the
fetch time.

Expired entries are deleted by an opportunistic sweep that the resolver
runs before each miss-triggered download. There is no background timer
and no explicit invalidation.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

import httpx

from docgen.app.errors import CacheIOError
from docgen.app.utils.hashing import compute_address_hash

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=2)


def address_extension(address: str) -> str:
    """
    Extension of the address's final path segment, including the dot.

    Query strings and fragments are ignored, and for http(s) payloads
    only the URL path is considered. Returns "" when the final segment
    has no extension.
    """
    payload = address.partition("@")[2]
    if payload.lower().startswith(("http://", "https://")):
        try:
            path = httpx.URL(payload).path
        except httpx.InvalidURL:
            return ""
        return PurePosixPath(path.rsplit("/", 1)[-1]).suffix

    tail = address.rsplit("/", 1)[-1]
    tail = tail.split("?", 1)[0].split("#", 1)[0]
    tail = tail.rsplit(":", 1)[-1]
    return PurePosixPath(tail).suffix


class TemplateCache:
    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl.total_seconds() <= 0:
            raise ValueError("Template cache TTL must be positive")

        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._clock = clock

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def cache_path_for(self, address: str) -> Path:
        name = compute_address_hash(address) + address_extension(address)
        return self.cache_dir / name

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def age_of(self, path: Path) -> Optional[timedelta]:
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return None
        return timedelta(seconds=max(0.0, self._clock() - mtime))

    def is_fresh(self, path: Path) -> bool:
        """True when ``path`` exists and is younger than the TTL."""
        if not path.is_file():
            return False

        age = self.age_of(path)
        if age is None:
            logger.warning("Could not read file attributes for: %s", path.name)
            return False

        fresh = age < self.ttl
        if not fresh:
            logger.info(
                "Cache expired for file: %s (age: %s, TTL: %s)",
                path.name,
                format_age(age),
                self.ttl,
            )
        return fresh

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """
        Delete every cache entry that is not fresh.

        Freshness is re-evaluated per file at sweep time, so an entry
        within its TTL is never removed. Returns the number of deleted
        files.

        Raises CacheIOError when the directory cannot be listed.
        """
        try:
            if not self.cache_dir.is_dir():
                return 0
            entries = list(self.cache_dir.iterdir())
        except OSError as exc:
            raise CacheIOError(
                f"Cannot list template cache directory: {self.cache_dir}"
            ) from exc

        deleted = 0
        for entry in entries:
            if not entry.is_file() or self.is_fresh(entry):
                continue
            try:
                entry.unlink()
            except FileNotFoundError:
                # Removed by a concurrent sweep.
                continue
            except OSError:
                logger.warning(
                    "Failed to delete expired cache file: %s", entry.name
                )
                continue
            deleted += 1
            logger.debug("Deleted expired cache file: %s", entry.name)

        if deleted:
            logger.info("Cleaned up %d expired cache files", deleted)
        return deleted


def format_age(age: Optional[timedelta]) -> str:
    if age is None:
        return "unknown"
    minutes = int(age.total_seconds() // 60)
    return f"{minutes // 60}h {minutes % 60}m"
