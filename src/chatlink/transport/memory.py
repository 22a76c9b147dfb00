"""In-process transport used by event replay and tests."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, DefaultDict, List, Tuple

from chatlink.transport.base import EventHandler, Handshake


class InMemoryTransport:
    """Records emitted events and lets the caller deliver inbound ones."""

    def __init__(self, handshake: Handshake) -> None:
        self.handshake = handshake
        self.emitted: List[Tuple[str, Tuple[Any, ...]]] = []
        self.closed = False
        self.listeners_removed = 0
        self._handlers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    def on(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def emit(self, event_name: str, *args: Any) -> None:
        self.emitted.append((event_name, tuple(args)))

    def remove_all_listeners(self) -> None:
        self._handlers.clear()
        self.listeners_removed += 1

    def close(self) -> None:
        self.closed = True

    def listener_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    def deliver(self, event_name: str, *args: Any) -> int:
        """Invoke every handler registered for ``event_name``; returns how many ran."""
        handlers = list(self._handlers.get(event_name, []))
        for handler in handlers:
            handler(*args)
        return len(handlers)

    def emitted_names(self) -> List[str]:
        return [name for name, _ in self.emitted]


class InMemoryTransportFactory:
    """Transport factory that keeps every transport it opened."""

    def __init__(self) -> None:
        self.opened: List[InMemoryTransport] = []

    def __call__(self, handshake: Handshake) -> InMemoryTransport:
        transport = InMemoryTransport(handshake)
        self.opened.append(transport)
        return transport

    @property
    def latest(self) -> InMemoryTransport:
        if not self.opened:
            raise LookupError("no transport opened yet")
        return self.opened[-1]
