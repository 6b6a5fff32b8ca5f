from .models import GenerationEvent, GenerationEventType
from .emitter import GenerationEventEmitter, NullEventEmitter

__all__ = [
    "GenerationEvent",
    "GenerationEventType",
    "GenerationEventEmitter",
    "NullEventEmitter",
]
