"""Single-slot bridge for ask-user and call-function sub-protocols."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional

from chatlink.interaction.types import (
    AckCallback,
    InteractionSnapshot,
    PendingRequest,
    RequestKind,
    RequestOutcome,
)
from chatlink.kernel.types import Record, StateEventSink
from chatlink.store.messages import MessageStore

LoadingSink = Callable[[bool], None]


class InteractionBridge:
    """Holds at most one ask and one call-fn request.

    Installing over an occupied slot invalidates the previous handle, so a
    stale ack can never fire. Timeouts are driven by server events only.
    """

    def __init__(
        self,
        messages: MessageStore,
        set_loading: LoadingSink,
        event_sink: Optional[StateEventSink] = None,
    ) -> None:
        self._messages = messages
        self._set_loading = set_loading
        self._event_sink = event_sink
        self._lock = threading.RLock()
        self._ask: Optional[PendingRequest] = None
        self._call_fn: Optional[PendingRequest] = None

    @property
    def ask(self) -> Optional[PendingRequest]:
        with self._lock:
            return self._ask

    @property
    def call_fn(self) -> Optional[PendingRequest]:
        with self._lock:
            return self._call_fn

    def install_ask(
        self,
        spec: Dict[str, Any],
        message: Optional[Record],
        callback: Optional[AckCallback],
    ) -> PendingRequest:
        request = PendingRequest(RequestKind.ASK, {"spec": dict(spec or {})}, callback)
        with self._lock:
            self._replace_locked(RequestKind.ASK, request)
            if message is not None:
                self._messages.append(message)
        self._set_loading(False)
        self._emit("interaction.requested", request)
        return request

    def clear_ask(self) -> None:
        self._release(RequestKind.ASK, RequestOutcome.CLEARED)
        self._set_loading(False)

    def ask_timeout(self) -> None:
        self._release(RequestKind.ASK, RequestOutcome.TIMED_OUT)
        self._set_loading(False)

    def install_call_fn(
        self,
        name: str,
        args: Dict[str, Any],
        callback: Optional[AckCallback],
    ) -> PendingRequest:
        request = PendingRequest(
            RequestKind.CALL_FN,
            {"name": str(name or ""), "args": dict(args or {})},
            callback,
        )
        with self._lock:
            self._replace_locked(RequestKind.CALL_FN, request)
        self._emit("interaction.requested", request)
        return request

    def clear_call_fn(self) -> None:
        self._release(RequestKind.CALL_FN, RequestOutcome.CLEARED)

    def call_fn_timeout(self) -> None:
        self._release(RequestKind.CALL_FN, RequestOutcome.TIMED_OUT)

    def answer_ask(self, value: Any) -> bool:
        return self._answer(RequestKind.ASK, value)

    def answer_call_fn(self, value: Any) -> bool:
        return self._answer(RequestKind.CALL_FN, value)

    def reset(self) -> None:
        self._release(RequestKind.ASK, RequestOutcome.DISCARDED)
        self._release(RequestKind.CALL_FN, RequestOutcome.DISCARDED)

    def snapshot(self) -> InteractionSnapshot:
        with self._lock:
            ask = self._ask
            call_fn = self._call_fn
            return InteractionSnapshot(
                ask_pending=ask is not None,
                ask_request_id=ask.request_id if ask is not None else "",
                ask_spec=dict(ask.payload.get("spec") or {}) if ask is not None else {},
                call_fn_pending=call_fn is not None,
                call_fn_request_id=call_fn.request_id if call_fn is not None else "",
                call_fn_name=str(call_fn.payload.get("name") or "") if call_fn is not None else "",
                call_fn_args=dict(call_fn.payload.get("args") or {}) if call_fn is not None else {},
            )

    def _answer(self, kind: RequestKind, value: Any) -> bool:
        with self._lock:
            request = self._slot(kind)
            if request is None:
                return False
            self._set_slot(kind, None)
        accepted = request.respond(value)
        if accepted:
            self._emit("interaction.answered", request)
        return accepted

    def _release(self, kind: RequestKind, outcome: RequestOutcome) -> None:
        with self._lock:
            request = self._slot(kind)
            self._set_slot(kind, None)
        if request is not None and request.invalidate(outcome):
            self._emit("interaction.{0}".format(outcome.value), request)

    def _replace_locked(self, kind: RequestKind, request: PendingRequest) -> None:
        previous = self._slot(kind)
        self._set_slot(kind, request)
        if previous is not None and previous.invalidate(RequestOutcome.REPLACED):
            self._emit("interaction.replaced", previous)

    def _slot(self, kind: RequestKind) -> Optional[PendingRequest]:
        return self._ask if kind == RequestKind.ASK else self._call_fn

    def _set_slot(self, kind: RequestKind, request: Optional[PendingRequest]) -> None:
        if kind == RequestKind.ASK:
            self._ask = request
        else:
            self._call_fn = request

    def _emit(self, event_type: str, request: PendingRequest) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink(
                event_type,
                {
                    "kind": request.kind.value,
                    "request_id": request.request_id,
                    "outcome": request.outcome.value,
                },
            )
        except Exception:
            return
