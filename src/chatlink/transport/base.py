"""Transport contract and connection handshake."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol
from urllib.parse import quote

EventHandler = Callable[..., Any]


class Transport(Protocol):
    """Named-event bidirectional connection.

    Handlers receive the event payload positionally. For events that expect an
    answer (``ask``, ``call_fn``) the transport appends the ack callable as the
    last positional argument. The driver must deliver events one at a time.
    """

    def on(self, event_name: str, handler: EventHandler) -> None:
        ...

    def emit(self, event_name: str, *args: Any) -> None:
        ...

    def remove_all_listeners(self) -> None:
        ...

    def close(self) -> None:
        ...


def encode_chat_profile(chat_profile: Optional[str]) -> str:
    if not chat_profile:
        return ""
    # Same safe set as JavaScript's encodeURIComponent.
    return quote(chat_profile, safe="-_.!~*'()")


@dataclass(frozen=True)
class Handshake:
    """Parameters a transport is opened with."""

    client_type: str
    session_id: str
    thread_id: str = ""
    user_env: Dict[str, str] = field(default_factory=dict)
    chat_profile: str = ""
    access_token: Optional[str] = None
    transports: Optional[List[str]] = None

    def auth_payload(self) -> Dict[str, Any]:
        return {
            "token": self.access_token,
            "clientType": self.client_type,
            "sessionId": self.session_id,
            "threadId": self.thread_id or "",
            "userEnv": json.dumps(self.user_env, separators=(",", ":")),
            "chatProfile": encode_chat_profile(self.chat_profile),
        }


TransportFactory = Callable[[Handshake], Transport]
