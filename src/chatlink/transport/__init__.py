"""Transport contract and the in-memory implementation."""

from .base import EventHandler, Handshake, Transport, TransportFactory, encode_chat_profile
from .memory import InMemoryTransport, InMemoryTransportFactory

__all__ = [
    "EventHandler",
    "Handshake",
    "InMemoryTransport",
    "InMemoryTransportFactory",
    "Transport",
    "TransportFactory",
    "encode_chat_profile",
]
