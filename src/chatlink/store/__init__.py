"""In-memory session collections."""

from .collection import ActionCollection, UpsertCollection
from .messages import MessageStore, StreamingContentAssembler, assemble_content

__all__ = [
    "ActionCollection",
    "MessageStore",
    "StreamingContentAssembler",
    "UpsertCollection",
    "assemble_content",
]
