"""Session event protocol."""

from .events import (
    CLEAR_SESSION,
    CONNECTION_SUCCESSFUL,
    EVENT_NAMES,
    EVENT_TYPES,
    InboundEvent,
    Thread,
    parse_event,
)

__all__ = [
    "CLEAR_SESSION",
    "CONNECTION_SUCCESSFUL",
    "EVENT_NAMES",
    "EVENT_TYPES",
    "InboundEvent",
    "Thread",
    "parse_event",
]
