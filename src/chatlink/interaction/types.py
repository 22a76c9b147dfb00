"""Pending request handles for server-initiated ask / call-fn exchanges."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from chatlink.kernel.types import new_id

AckCallback = Callable[[Any], Any]


class RequestKind(str, Enum):
    ASK = "ask"
    CALL_FN = "call_fn"


class RequestOutcome(str, Enum):
    """Terminal state of one pending request."""

    PENDING = "pending"
    ANSWERED = "answered"
    CLEARED = "cleared"
    TIMED_OUT = "timed_out"
    REPLACED = "replaced"
    DISCARDED = "discarded"


class PendingRequest:
    """One outstanding request whose ack may be consumed exactly once.

    ``respond`` hands the answer to the transport ack and resolves ``future``.
    ``invalidate`` drops the ack and cancels ``future``. Whichever runs first
    wins; later calls return False and have no effect.
    """

    def __init__(
        self,
        kind: RequestKind,
        payload: Dict[str, Any],
        callback: Optional[AckCallback] = None,
        request_id: Optional[str] = None,
    ) -> None:
        self.kind = RequestKind(kind)
        self.request_id = request_id or new_id(self.kind.value)
        self.payload = dict(payload)
        self.future: "Future[Any]" = Future()
        self._lock = threading.Lock()
        self._callback = callback
        self._outcome = RequestOutcome.PENDING

    @property
    def active(self) -> bool:
        with self._lock:
            return self._outcome == RequestOutcome.PENDING

    @property
    def outcome(self) -> RequestOutcome:
        with self._lock:
            return self._outcome

    def respond(self, value: Any) -> bool:
        with self._lock:
            if self._outcome != RequestOutcome.PENDING:
                return False
            self._outcome = RequestOutcome.ANSWERED
            callback = self._callback
            self._callback = None
        self.future.set_result(value)
        if callback is not None:
            callback(value)
        return True

    def invalidate(self, outcome: RequestOutcome = RequestOutcome.DISCARDED) -> bool:
        with self._lock:
            if self._outcome != RequestOutcome.PENDING:
                return False
            self._outcome = RequestOutcome(outcome)
            self._callback = None
        self.future.cancel()
        return True


@dataclass(frozen=True)
class InteractionSnapshot:
    """Read-only view of both request slots."""

    ask_pending: bool = False
    ask_request_id: str = ""
    ask_spec: Dict[str, Any] = field(default_factory=dict)
    call_fn_pending: bool = False
    call_fn_request_id: str = ""
    call_fn_name: str = ""
    call_fn_args: Dict[str, Any] = field(default_factory=dict)
