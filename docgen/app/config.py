"""
Centralized configuration management for the document generation service.

Pydantic v2 settings management: values are parsed once from the
environment (prefix ``DOCGEN_``), validated, and frozen for the lifetime
of the process.
"""

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_TMP_ROOT = Path(tempfile.gettempdir())


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

Seconds = Annotated[
    float,
    Field(gt=0, description="Duration in seconds"),
]

BucketName = Annotated[
    str,
    Field(
        pattern=r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$",
        description="S3 bucket name",
    ),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if a value is malformed.
    """

    # ---------------------------------------------------------------------
    # Template resolution and cache
    # ---------------------------------------------------------------------

    template_dir: Annotated[
        Path,
        Field(
            default=Path("templates"),
            description="Root directory for bare (untagged) template paths",
        ),
    ]

    cache_dir: Annotated[
        Path,
        Field(
            default=_TMP_ROOT / "templates-cache",
            description="Flat directory holding downloaded templates",
        ),
    ]

    cache_ttl_seconds: Annotated[
        int,
        Field(
            default=2 * 60 * 60,
            gt=0,
            description="Maximum age of a cached template before re-fetch",
        ),
    ]

    http_connect_timeout: Seconds = 10.0
    http_read_timeout: Seconds = 30.0

    templates_bucket: Optional[BucketName] = None

    # ---------------------------------------------------------------------
    # Generation
    # ---------------------------------------------------------------------

    artifact_dir: Annotated[
        Path,
        Field(
            default=_TMP_ROOT / "generated-documents",
            description="Directory receiving locally generated artifacts",
        ),
    ]

    default_output_format: Annotated[
        str,
        Field(
            default="pdf",
            description="Format used when a request names an unknown one",
        ),
    ]

    max_workers: Annotated[
        int,
        Field(
            default=4,
            ge=1,
            le=64,
            description="Upper bound on concurrently executing jobs",
        ),
    ]

    lualatex_timeout: Seconds = 60.0

    # ---------------------------------------------------------------------
    # Artifact persistence (S3)
    # ---------------------------------------------------------------------

    documents_bucket: Optional[BucketName] = None

    documents_prefix: Annotated[
        str,
        Field(
            default="generated-documents",
            min_length=1,
            description="Key prefix for persisted artifacts",
        ),
    ]

    aws_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None

    # ---------------------------------------------------------------------
    # Operational
    # ---------------------------------------------------------------------

    log_level: Annotated[
        str,
        Field(default="INFO", description="Root logging level"),
    ]

    @field_validator("default_output_format")
    @classmethod
    def validate_default_format(cls, v: str) -> str:
        from docgen.app.schemas.generation import DocumentFormat

        allowed = {f.value for f in DocumentFormat}
        normalized = v.strip().lower()
        if normalized not in allowed:
            raise ValueError(
                f"Unsupported default_output_format '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.strip().upper()
        if normalized not in allowed:
            raise ValueError(
                f"Unsupported log_level '{v}'. Allowed values: {sorted(allowed)}"
            )
        return normalized

    model_config = SettingsConfigDict(
        env_prefix="DOCGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Dependency injection provider for application settings.

    Uses an explicit singleton pattern within the FastAPI lifecycle.
    """
    return Settings()
