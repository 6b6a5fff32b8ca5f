from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# ----------------------------------------------------------------------
# Event Types (Finite)
# ----------------------------------------------------------------------
class GenerationEventType(str, Enum):
    """
    Progression events emitted while composing one request tree.

    NOTE:
    This enum is finite. New entries must preserve observational
    semantics.
    """

    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"
    BATCH_FAILED = "batch_failed"

    JOB_SUCCEEDED = "job_succeeded"
    JOB_FAILED = "job_failed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class GenerationEvent(BaseModel):
    """
    An immutable observation of a composition step.

    Events never carry variable bindings or rendered content.
    """

    event_id: UUID = Field(default_factory=uuid4)
    batch_id: str = Field(..., description="Identifier of the composed request")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: GenerationEventType

    # Optional contextual metadata (job index, counts, error code, ...)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
