"""Ask-user / call-function request bridging."""

from .types import (
    AckCallback,
    InteractionSnapshot,
    PendingRequest,
    RequestKind,
    RequestOutcome,
)
from .bridge import InteractionBridge

__all__ = [
    "AckCallback",
    "InteractionBridge",
    "InteractionSnapshot",
    "PendingRequest",
    "RequestKind",
    "RequestOutcome",
]
