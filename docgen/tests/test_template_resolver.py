import os
import time
from datetime import timedelta
from pathlib import Path

import pytest

from docgen.app.errors import (
    AddressNotFound,
    CacheIOError,
    DownloadFailed,
    InvalidAddress,
    UnsupportedScheme,
)
from docgen.app.templates.cache import TemplateCache
from docgen.app.templates.downloaders.registry import DownloaderRegistry
from docgen.app.templates.resolver import TemplateResolver
from docgen.tests.helpers import SilentDownloader, StubDownloader


def _resolver(cache_dir, *downloaders, ttl=timedelta(hours=2)):
    cache = TemplateCache(cache_dir, ttl=ttl)
    return TemplateResolver(DownloaderRegistry(list(downloaders)), cache), cache


def _age(path, seconds):
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


def test_untagged_address_is_returned_unchanged_without_touching_cache(tmp_path):
    downloader = StubDownloader()
    cache_dir = tmp_path / "cache"
    resolver, _ = _resolver(cache_dir, downloader)

    assert resolver.resolve("invoices/monthly.txt") == "invoices/monthly.txt"
    assert downloader.calls == []
    assert not cache_dir.exists()


def test_miss_downloads_into_cache_then_hit_skips_transport(tmp_path):
    downloader = StubDownloader(protocols=("stub",), content=b"hello")
    resolver, cache = _resolver(tmp_path, downloader)
    address = "stub@bucket:letters/welcome.txt"

    first = resolver.resolve(address)
    second = resolver.resolve(address)

    assert first == second == str(cache.cache_path_for(address))
    assert first.endswith(".txt")
    assert len(downloader.calls) == 1
    with open(first, "rb") as handle:
        assert handle.read() == b"hello"


def test_expired_entry_is_downloaded_again(tmp_path):
    downloader = StubDownloader(content=b"v1")
    resolver, cache = _resolver(tmp_path, downloader, ttl=timedelta(minutes=10))
    address = "stub@bucket:t.txt"

    path = resolver.resolve(address)
    _age(cache.cache_path_for(address), 11 * 60)
    downloader.content = b"v2"

    assert resolver.resolve(address) == path
    assert len(downloader.calls) == 2
    with open(path, "rb") as handle:
        assert handle.read() == b"v2"


def test_miss_sweeps_expired_entries_but_keeps_fresh_ones(tmp_path):
    downloader = StubDownloader()
    resolver, _ = _resolver(tmp_path, downloader, ttl=timedelta(minutes=10))
    stale = tmp_path / "stale-entry.tex"
    fresh = tmp_path / "fresh-entry.tex"
    stale.write_text("old")
    fresh.write_text("new")
    _age(stale, 3600)

    resolver.resolve("stub@bucket:other.txt")

    assert not stale.exists()
    assert fresh.exists()


def test_dispatch_selects_downloader_by_scheme(tmp_path):
    blob = StubDownloader(protocols=("blob", "s3"), content=b"blob")
    http = StubDownloader(protocols=("http", "https"), content=b"http")
    resolver, _ = _resolver(tmp_path, blob, http)

    resolver.resolve("https@https://example.com/t.html")
    resolver.resolve("S3@bucket:t.tex")

    assert [raw for raw, _ in http.calls] == ["https@https://example.com/t.html"]
    assert [raw for raw, _ in blob.calls] == ["S3@bucket:t.tex"]


def test_unknown_scheme_lists_supported_protocols(tmp_path):
    resolver, _ = _resolver(
        tmp_path,
        StubDownloader(protocols=("blob", "s3")),
        StubDownloader(protocols=("file",)),
    )

    with pytest.raises(UnsupportedScheme) as exc_info:
        resolver.resolve("ftp@host:t.txt")

    assert exc_info.value.supported == ["blob", "s3", "file"]


@pytest.mark.parametrize("address", ["", "   "])
def test_blank_address(tmp_path, address):
    resolver, _ = _resolver(tmp_path, StubDownloader())

    with pytest.raises(AddressNotFound):
        resolver.resolve(address)


def test_parent_segment_never_reaches_a_downloader(tmp_path):
    downloader = StubDownloader()
    resolver, _ = _resolver(tmp_path, downloader)

    with pytest.raises(InvalidAddress):
        resolver.resolve("stub@bucket:../escape.txt")
    assert downloader.calls == []


def test_failed_download_leaves_no_cache_entry(tmp_path):
    resolver, cache = _resolver(tmp_path, StubDownloader(fail=True))
    address = "stub@bucket:t.txt"

    with pytest.raises(DownloadFailed):
        resolver.resolve(address)

    assert not cache.cache_path_for(address).exists()
    assert list(tmp_path.iterdir()) == []


def test_downloader_that_writes_nothing_is_a_failure(tmp_path):
    resolver, _ = _resolver(tmp_path, SilentDownloader())

    with pytest.raises(DownloadFailed):
        resolver.resolve("stub@bucket:t.txt")


def test_uncreatable_cache_directory(tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("file in the way")
    resolver, _ = _resolver(blocker / "cache", StubDownloader())

    with pytest.raises(CacheIOError):
        resolver.resolve("stub@bucket:t.txt")


def test_unlistable_cache_directory_fails_as_cache_io_error(tmp_path, monkeypatch):
    downloader = StubDownloader()
    resolver, _ = _resolver(tmp_path / "cache", downloader)

    def refuse(self):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "iterdir", refuse)

    with pytest.raises(CacheIOError):
        resolver.resolve("stub@bucket:t.txt")
    assert downloader.calls == []
