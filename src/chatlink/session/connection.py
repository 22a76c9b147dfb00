"""Transport lifecycle: open with handshake, coalesced open, teardown."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from chatlink.kernel.debug_log import DebugLogWriter
from chatlink.kernel.errors import ChatlinkError, TransportError, error_summary
from chatlink.session.state import TOPIC_SESSION, ConnectionState, SessionState
from chatlink.transport.base import Handshake, Transport, TransportFactory

DEFAULT_COALESCE_WINDOW_SEC = 0.2

TransportBinder = Callable[[Transport], None]
TransportUnbinder = Callable[[], None]


class CoalescedCall:
    """Collapses calls made within ``window_sec`` into one call with the last arguments.

    A single ``threading.Timer`` is kept; every call cancels and re-arms it.
    Errors raised on the timer thread go to ``on_error`` and never leave it;
    ``flush`` runs on the caller and lets them propagate.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        window_sec: float = DEFAULT_COALESCE_WINDOW_SEC,
        on_error: Optional[Callable[[ChatlinkError], None]] = None,
    ) -> None:
        self._func = func
        self._on_error = on_error
        self._window_sec = max(0.0, float(window_sec))
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]] = None
        self._token = 0

    @property
    def window_sec(self) -> float:
        return self._window_sec

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._token += 1
            self._pending = (args, dict(kwargs))
            self._timer = threading.Timer(self._window_sec, self._fire, args=(self._token,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Run the pending call now on the calling thread."""
        with self._lock:
            call = self._take_locked()
        if call is None:
            return False
        args, kwargs = call
        self._func(*args, **kwargs)
        return True

    def cancel(self) -> bool:
        with self._lock:
            return self._take_locked() is not None

    def _fire(self, token: int) -> None:
        with self._lock:
            # A timer that lost the race against a newer call, flush, or cancel.
            if token != self._token:
                return
            call = self._take_locked()
        if call is None:
            return
        args, kwargs = call
        try:
            self._func(*args, **kwargs)
        except ChatlinkError as exc:
            if self._on_error is not None:
                self._on_error(exc)

    def _take_locked(self) -> Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._token += 1
        call = self._pending
        self._pending = None
        return call


class ConnectionManager:
    """Owns the single active transport of a session."""

    def __init__(
        self,
        state: SessionState,
        transport_factory: TransportFactory,
        *,
        bind: TransportBinder,
        unbind: TransportUnbinder,
        client_type: str,
        coalesce_window_sec: float = DEFAULT_COALESCE_WINDOW_SEC,
        debug_log: Optional[DebugLogWriter] = None,
    ) -> None:
        self._state = state
        self._transport_factory = transport_factory
        self._bind = bind
        self._unbind = unbind
        self._client_type = str(client_type)
        self._debug_log = debug_log
        self._transport: Optional[Transport] = None
        self._coalesced = CoalescedCall(self.connect, coalesce_window_sec, on_error=self._on_coalesced_error)

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def coalesced(self) -> CoalescedCall:
        return self._coalesced

    def build_handshake(
        self,
        user_env: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
        transports: Optional[List[str]] = None,
    ) -> Handshake:
        with self._state.lock:
            return Handshake(
                client_type=self._client_type,
                session_id=self._state.session_id,
                thread_id=self._state.thread_id_to_resume or "",
                user_env=dict(user_env or {}),
                chat_profile=self._state.chat_profile,
                access_token=access_token,
                transports=list(transports) if transports is not None else None,
            )

    def connect(
        self,
        user_env: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
        transports: Optional[List[str]] = None,
    ) -> Transport:
        with self._state.lock:
            # The old transport must be silenced before the new one exists.
            self._teardown_locked()
            handshake = self.build_handshake(user_env, access_token, transports)
            self._state.connection_state = ConnectionState.CONNECTING
            self._log(
                "connect",
                {
                    "clientType": handshake.client_type,
                    "threadId": handshake.thread_id,
                    "chatProfile": handshake.chat_profile,
                    "transports": handshake.transports,
                    "access_token": handshake.access_token,
                },
            )
            try:
                transport = self._transport_factory(handshake)
            except Exception as exc:
                self._state.connection_state = ConnectionState.ERROR
                self._state.error = True
                self._log("connect_failed", {"error": str(exc)}, level="error")
                self._state.publish([TOPIC_SESSION])
                raise TransportError("failed to open transport", reason=str(exc)) from exc
            self._transport = transport
            self._bind(transport)
        self._state.publish([TOPIC_SESSION])
        return transport

    def connect_coalesced(
        self,
        user_env: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
        transports: Optional[List[str]] = None,
    ) -> None:
        self._coalesced(user_env, access_token, transports)

    def disconnect(self) -> bool:
        self._coalesced.cancel()
        with self._state.lock:
            had_transport = self._teardown_locked()
            self._state.connection_state = ConnectionState.IDLE
        if had_transport:
            self._log("disconnect", {})
            self._state.publish([TOPIC_SESSION])
        return had_transport

    def _on_coalesced_error(self, exc: ChatlinkError) -> None:
        self._log("coalesced_connect_failed", {"error": error_summary(exc)}, level="error")

    def _teardown_locked(self) -> bool:
        transport = self._transport
        self._transport = None
        self._unbind()
        if transport is None:
            return False
        transport.remove_all_listeners()
        transport.close()
        return True

    def _log(self, name: str, data: Dict[str, Any], level: str = "info") -> None:
        if self._debug_log is None:
            return
        self._debug_log.write_entry(
            level=level,
            component="connection",
            kind="lifecycle",
            session_id=self._state.session_id,
            event_name=name,
            message="connection:{0}".format(name),
            data=data,
        )
