from __future__ import annotations

from typing import Protocol

from docgen.app.events.models import GenerationEvent


class GenerationEventEmitter(Protocol):
    """
    Interface for broadcasting composition progress.

    Implementations must be non-blocking and observational only: an
    emitter never influences control flow.
    """

    async def emit(self, event: GenerationEvent) -> None:
        ...


class NullEventEmitter:
    """No-op emitter, used when nobody listens."""

    async def emit(self, event: GenerationEvent) -> None:
        return
