"""Composition root wiring state, dispatcher, and connection for one session."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from chatlink.config import Settings
from chatlink.kernel.debug_log import DebugLogWriter
from chatlink.kernel.eventbus import Listener, Unsubscribe
from chatlink.kernel.types import ElementUrlResolver
from chatlink.session.connection import ConnectionManager
from chatlink.session.dispatcher import EventDispatcher, ReloadHook
from chatlink.session.resume import ThreadResumeReconciler
from chatlink.session.state import TOPIC_INTERACTION, TOPIC_SESSION, SessionSnapshot, SessionState
from chatlink.transport.base import Transport, TransportFactory


def endpoint_element_url_resolver(http_endpoint: str) -> ElementUrlResolver:
    base = http_endpoint.rstrip("/")

    def resolve(key: str, session_id: str) -> str:
        return "{0}/project/file/{1}?session_id={2}".format(
            base,
            quote(key, safe=""),
            quote(session_id, safe=""),
        )

    return resolve


class ChatSession:
    """Client-side synchronized view of one chat session."""

    def __init__(
        self,
        settings: Settings,
        transport_factory: TransportFactory,
        *,
        session_id: Optional[str] = None,
        element_url_resolver: Optional[ElementUrlResolver] = None,
        on_reload: Optional[ReloadHook] = None,
        debug_log: Optional[DebugLogWriter] = None,
    ) -> None:
        self.settings = settings
        self.debug_log = debug_log or DebugLogWriter(
            logs_dir=settings.resolved_logs_dir,
            enabled=settings.logs_enabled,
            max_file_bytes=settings.logs_max_file_bytes,
            max_files=settings.logs_max_files,
            redaction=settings.logs_redaction,
        )
        self.state = SessionState(session_id=session_id, interaction_sink=self._log_interaction)
        if element_url_resolver is None and settings.http_endpoint:
            element_url_resolver = endpoint_element_url_resolver(settings.http_endpoint)
        self.dispatcher = EventDispatcher(
            self.state,
            ThreadResumeReconciler(self.state),
            element_url_resolver=element_url_resolver,
            on_reload=on_reload,
            debug_log=self.debug_log,
        )
        self.connection = ConnectionManager(
            self.state,
            transport_factory,
            bind=self.dispatcher.bind,
            unbind=self.dispatcher.unbind,
            client_type=settings.client_type,
            coalesce_window_sec=settings.connect_debounce_sec,
            debug_log=self.debug_log,
        )

    @property
    def session_id(self) -> str:
        return self.state.session_id

    def connect(
        self,
        user_env: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
        transports: Optional[List[str]] = None,
    ) -> Transport:
        return self.connection.connect(user_env, access_token, self._transports(transports))

    def connect_coalesced(
        self,
        user_env: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
        transports: Optional[List[str]] = None,
    ) -> None:
        self.connection.connect_coalesced(user_env, access_token, self._transports(transports))

    def disconnect(self) -> bool:
        return self.connection.disconnect()

    def close(self) -> None:
        self.disconnect()
        self.state.interaction.reset()

    def snapshot(self) -> SessionSnapshot:
        return self.state.snapshot()

    def subscribe(self, topic: str, listener: Listener) -> Unsubscribe:
        return self.state.subscribe(topic, listener)

    def answer_ask(self, value: Any) -> bool:
        accepted = self.state.interaction.answer_ask(value)
        if accepted:
            self.state.publish([TOPIC_INTERACTION])
        return accepted

    def answer_call_fn(self, value: Any) -> bool:
        accepted = self.state.interaction.answer_call_fn(value)
        if accepted:
            self.state.publish([TOPIC_INTERACTION])
        return accepted

    def set_chat_profile(self, chat_profile: Optional[str]) -> None:
        with self.state.lock:
            self.state.chat_profile = str(chat_profile or "")
        self.state.publish([TOPIC_SESSION])

    def set_thread_to_resume(self, thread_id: Optional[str]) -> None:
        with self.state.lock:
            self.state.thread_id_to_resume = str(thread_id or "")
        self.state.publish([TOPIC_SESSION])

    def _transports(self, transports: Optional[List[str]]) -> List[str]:
        if transports is not None:
            return list(transports)
        return list(self.settings.transports)

    def _log_interaction(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.debug_log.write_entry(
            level="info",
            component="interaction",
            kind="lifecycle",
            session_id=self.state.session_id,
            event_name=event_type,
            message=event_type,
            data=payload,
        )
