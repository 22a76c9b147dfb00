"""Topic-scoped observer registry for state-change notifications."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Iterable, List, Tuple

ALL_TOPICS = "*"

Listener = Callable[[str, Any], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """Synchronous pub-sub; listeners run on the publishing thread.

    One ``publish`` call reaches each topic listener once per changed topic and
    each wildcard listener exactly once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, topic: str, listener: Listener) -> Unsubscribe:
        with self._lock:
            self._listeners[topic].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                bucket = self._listeners.get(topic, [])
                if listener in bucket:
                    bucket.remove(listener)

        return unsubscribe

    def publish(self, topics: Iterable[str], payload: Any) -> None:
        changed = tuple(dict.fromkeys(topics))
        calls: List[Tuple[str, Listener]] = []
        with self._lock:
            for topic in changed:
                if topic == ALL_TOPICS:
                    continue
                calls.extend((topic, listener) for listener in self._listeners.get(topic, []))
            if changed:
                calls.extend((ALL_TOPICS, listener) for listener in self._listeners.get(ALL_TOPICS, []))
        for topic, listener in calls:
            try:
                listener(topic, payload)
            except Exception:
                # A failing presentation listener must not break dispatch.
                continue

    def listener_count(self, topic: str) -> int:
        with self._lock:
            return len(self._listeners.get(topic, []))
