"""
Error taxonomy for the document generation core.

Every error carries two stable class attributes:

- ``code``:  an upper-snake identifier surfaced to transport adapters
- ``stage``: the pipeline stage that raised it

Stages:

    flatten     malformed request shape, detected before any job runs
    generation  a single job failed (address, download, render, persist)
    reconcile   outcomes could not be mapped back onto the request tree

Transport adapters map these to wire responses. The core never catches
its own taxonomy to hide it; per-job errors are captured as values by the
orchestrator's batch form instead.
"""

from __future__ import annotations

from typing import List, Optional, Tuple


class DocumentGenerationError(Exception):
    """Base class for every error raised by the generation core."""

    code: str = "DOCUMENT_GENERATION_ERROR"
    stage: str = "generation"


# ----------------------------------------------------------------------
# Address resolution
# ----------------------------------------------------------------------


class InvalidAddress(DocumentGenerationError):
    """Raised for addresses that must never be resolved (e.g. '..' segments)."""

    code = "INVALID_ADDRESS"

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid template address '{address}': {reason}")


class AddressNotFound(InvalidAddress):
    """Raised when a template address is missing or blank."""

    code = "ADDRESS_NOT_FOUND"

    def __init__(self, address: Optional[str] = None) -> None:
        super().__init__(address or "", "address is null or empty")


class UnsupportedScheme(DocumentGenerationError):
    code = "UNSUPPORTED_SCHEME"

    def __init__(self, address: str, supported: List[str]) -> None:
        self.address = address
        self.supported = list(supported)
        super().__init__(
            f"No downloader found for address '{address}'. "
            f"Supported protocols: {self.supported}"
        )


class DownloadFailed(DocumentGenerationError):
    code = "DOWNLOAD_FAILED"

    def __init__(self, address: str, cause: str) -> None:
        self.address = address
        self.cause = cause
        super().__init__(f"Failed to download template '{address}': {cause}")


class CacheIOError(DocumentGenerationError):
    """Raised when the local filesystem cannot be used as expected."""

    code = "CACHE_IO_ERROR"


class ArtifactWriteError(CacheIOError):
    """Raised when a rendered artifact cannot be written locally."""

    code = "ARTIFACT_WRITE_ERROR"


# ----------------------------------------------------------------------
# Rendering and persistence
# ----------------------------------------------------------------------


class RenderFailed(DocumentGenerationError):
    code = "RENDER_FAILED"


class PersistFailed(DocumentGenerationError):
    code = "PERSIST_FAILED"


# ----------------------------------------------------------------------
# Request shape (fail fast, before any job runs)
# ----------------------------------------------------------------------


class InvalidTemplateData(DocumentGenerationError):
    code = "INVALID_TEMPLATE_DATA"
    stage = "flatten"


class EmptyCompositionList(InvalidTemplateData):
    code = "EMPTY_COMPOSITION_LIST"

    def __init__(self, group_index: int, group_type: Optional[str]) -> None:
        self.group_index = group_index
        self.group_type = group_type
        super().__init__(
            f"Output group {group_index} ('{group_type}') declares "
            "no composition items."
        )


class MissingTemplateData(InvalidTemplateData):
    code = "MISSING_TEMPLATE_DATA"

    def __init__(self, group_index: int, item_index: int) -> None:
        self.group_index = group_index
        self.item_index = item_index
        super().__init__(
            f"Template item {item_index} of output group {group_index} "
            "carries no variable data."
        )


# ----------------------------------------------------------------------
# Reconciliation
# ----------------------------------------------------------------------


class StructuralMismatch(DocumentGenerationError):
    code = "STRUCTURAL_MISMATCH"
    stage = "reconcile"

    def __init__(self, expected: int, supplied: int) -> None:
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"Number of outcomes ({supplied}) does not match number of "
            f"template items in the request tree ({expected})."
        )


# ----------------------------------------------------------------------
# Batch
# ----------------------------------------------------------------------


class GenerationFailed(DocumentGenerationError):
    """
    Raised by the composer when one or more jobs in a batch failed.

    ``failures`` holds ``(job_index, template_address, error)`` tuples in
    job order.
    """

    code = "GENERATION_FAILED"

    def __init__(
        self,
        failures: List[Tuple[int, str, DocumentGenerationError]],
        total: int,
    ) -> None:
        self.failures = list(failures)
        self.total = total
        indexes = ", ".join(str(index) for index, _, _ in self.failures)
        super().__init__(
            f"{len(self.failures)} of {total} generation jobs failed "
            f"(job indexes: {indexes})."
        )
