"""
Template resolution.

Turns any template address into something a render engine can open:

    1. untagged address        returned unchanged (engine looks it up)
    2. fresh cache entry        returned immediately, no transport call
    3. missing or stale entry   sweep expired entries, download, return

Resolution never retries. Two concurrent resolutions of the same address
may both miss and both download; downloads are idempotent and written
atomically, so the only cost is a redundant transfer.
"""

from __future__ import annotations

import logging

from docgen.app.errors import CacheIOError, DownloadFailed
from docgen.app.templates.address import classify
from docgen.app.templates.cache import TemplateCache, format_age
from docgen.app.templates.downloaders.registry import DownloaderRegistry

logger = logging.getLogger(__name__)


class TemplateResolver:
    def __init__(
        self,
        registry: DownloaderRegistry,
        cache: TemplateCache,
    ) -> None:
        self._registry = registry
        self._cache = cache

    def resolve(self, address: str) -> str:
        """
        Resolve ``address`` to a local file path (or the bare address).

        Raises:
            AddressNotFound:   blank address
            InvalidAddress:    address contains '..'
            UnsupportedScheme: no downloader handles the scheme
            DownloadFailed:    the selected downloader failed
            CacheIOError:      the cache directory cannot be created
        """
        parsed = classify(address)

        if parsed.is_local:
            logger.debug("Template has no scheme, using as-is: %s", address)
            return address

        cached = self._cache.cache_path_for(parsed.raw)
        if self._cache.is_fresh(cached):
            logger.info(
                "Using cached template: %s (age: %s)",
                cached.name,
                format_age(self._cache.age_of(cached)),
            )
            return str(cached)

        logger.info("Template not in cache or expired, downloading: %s", cached.name)

        try:
            self._cache.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheIOError(
                f"Cannot create template cache directory: {self._cache.cache_dir}"
            ) from exc

        self._cache.sweep_expired()

        downloader = self._registry.dispatch(parsed)
        downloader.fetch(parsed, cached)

        if not cached.is_file():
            raise DownloadFailed(parsed.raw, "downloader produced no file")

        logger.info(
            "Template downloaded and cached: %s (%d bytes)",
            cached.name,
            cached.stat().st_size,
        )
        return str(cached)
