"""Session state, reconciliation, dispatch, and connection lifecycle."""

from .state import ConnectionState, SessionSnapshot, SessionState
from .resume import ThreadResumeReconciler
from .connection import CoalescedCall, ConnectionManager
from .dispatcher import EventDispatcher
from .client import ChatSession, endpoint_element_url_resolver

__all__ = [
    "ChatSession",
    "CoalescedCall",
    "ConnectionManager",
    "ConnectionState",
    "EventDispatcher",
    "SessionSnapshot",
    "SessionState",
    "ThreadResumeReconciler",
    "endpoint_element_url_resolver",
]
