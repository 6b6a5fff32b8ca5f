from .base import TemplateDownloader, atomic_write
from .blob import BlobTemplateDownloader
from .filesystem import FileSystemTemplateDownloader
from .http import HttpTemplateDownloader
from .registry import DownloaderRegistry

__all__ = [
    "TemplateDownloader",
    "atomic_write",
    "BlobTemplateDownloader",
    "FileSystemTemplateDownloader",
    "HttpTemplateDownloader",
    "DownloaderRegistry",
]
