from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from docgen.app.errors import DocumentGenerationError


LOCAL_LOCATION_PREFIX = "file@"


# ----------------------------------------------------------------------
# Output formats (finite)
# ----------------------------------------------------------------------
class DocumentFormat(str, Enum):
    """
    Supported document output formats.

    Each format carries its file extension and media type.
    """

    PDF = "pdf"
    HTML = "html"
    TXT = "txt"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @classmethod
    def parse(
        cls,
        value: Optional[str],
        default: "DocumentFormat",
    ) -> "DocumentFormat":
        """
        Match ``value`` case-insensitively against the known formats.

        Blank or unrecognized values fall back to ``default`` rather than
        failing, to tolerate minor client inconsistencies.
        """
        if value is None or not value.strip():
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            return default


_MEDIA_TYPES = {
    DocumentFormat.PDF: "application/pdf",
    DocumentFormat.HTML: "text/html",
    DocumentFormat.TXT: "text/plain",
}


# ----------------------------------------------------------------------
# Generation job
# ----------------------------------------------------------------------
class GenerationJob(BaseModel):
    """
    One ready-to-render unit of work derived from a template item.

    ``index`` is the job's position in flattened order and is the only
    link back to the request tree.
    """

    index: int = Field(..., ge=0)
    template_address: str
    output_format: Optional[str] = None
    bindings: Dict[str, Any] = Field(default_factory=dict)
    assets: Dict[str, bytes] = Field(default_factory=dict)
    persist: bool = False

    model_config = ConfigDict(frozen=True)

    def __repr__(self) -> str:
        # Bindings may carry client data; only their shape is shown.
        return (
            f"GenerationJob(index={self.index}, "
            f"template_address={self.template_address!r}, "
            f"output_format={self.output_format!r}, "
            f"bindings={len(self.bindings)} fields, "
            f"assets={sorted(self.assets)}, persist={self.persist})"
        )

    __str__ = __repr__


# ----------------------------------------------------------------------
# Generation outcome
# ----------------------------------------------------------------------
class GenerationOutcome(BaseModel):
    """
    Result of executing one generation job.

    ``persisted_location`` is present only when persistence was requested
    and succeeded. ``persist_error`` records a best-effort persistence
    failure; the local artifact remains valid in that case.
    """

    content: bytes
    local_path: Path
    persisted_location: Optional[str] = None
    persist_error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def local_location(self) -> str:
        return f"{LOCAL_LOCATION_PREFIX}{self.local_path}"

    @property
    def location(self) -> str:
        """Persisted location if present, else the local artifact location."""
        if self.persisted_location:
            return self.persisted_location
        return self.local_location


# ----------------------------------------------------------------------
# Tagged per-job result
# ----------------------------------------------------------------------
class JobResult(BaseModel):
    """
    Success/failure value for one job of a batch.

    Exactly one of ``outcome`` and ``error`` is set.
    """

    index: int
    template_address: str
    outcome: Optional[GenerationOutcome] = None
    error: Optional[DocumentGenerationError] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return self.error is None
