"""Fixed inbound event table: one handler per catalog variant."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type

from chatlink.kernel.debug_log import DebugLogWriter
from chatlink.kernel.errors import ProtocolError, error_summary
from chatlink.kernel.types import ELEMENT_TYPE_AVATAR, ELEMENT_TYPE_TASKLIST, ElementUrlResolver
from chatlink.protocol import events as ev
from chatlink.session.resume import ThreadResumeReconciler
from chatlink.session.state import (
    TOPIC_ACTIONS,
    TOPIC_ELEMENTS,
    TOPIC_INTERACTION,
    TOPIC_MESSAGES,
    TOPIC_SESSION,
    TOPIC_SETTINGS,
    TOPIC_TASKLISTS,
    TOPIC_USAGE,
    ConnectionState,
    SessionState,
)
from chatlink.transport.base import Transport

Topics = Tuple[str, ...]
ReloadHook = Callable[[], None]

_NO_CHANGE: Topics = ()


class EventDispatcher:
    """Routes parsed inbound events to the store operation they trigger.

    Listeners are bound per transport generation. Once a transport is unbound,
    events it still delivers are dropped before touching state.
    """

    def __init__(
        self,
        state: SessionState,
        reconciler: Optional[ThreadResumeReconciler] = None,
        *,
        element_url_resolver: Optional[ElementUrlResolver] = None,
        on_reload: Optional[ReloadHook] = None,
        debug_log: Optional[DebugLogWriter] = None,
    ) -> None:
        self._state = state
        self._reconciler = reconciler or ThreadResumeReconciler(state)
        self._element_url_resolver = element_url_resolver
        self._on_reload = on_reload
        self._debug_log = debug_log
        self._transport: Optional[Transport] = None
        self._generation = 0
        self._handlers: Dict[Type[Any], Callable[[Any], Topics]] = {
            ev.Connected: self._on_connected,
            ev.ConnectError: self._on_connect_error,
            ev.TaskStart: self._on_task_start,
            ev.TaskEnd: self._on_task_end,
            ev.Reload: self._on_reload_event,
            ev.ResumeThread: self._on_resume_thread,
            ev.NewMessage: self._on_new_message,
            ev.FirstInteraction: self._on_first_interaction,
            ev.UpdateMessage: self._on_update_message,
            ev.DeleteMessage: self._on_delete_message,
            ev.StreamStart: self._on_stream_start,
            ev.StreamToken: self._on_stream_token,
            ev.Ask: self._on_ask,
            ev.AskTimeout: self._on_ask_timeout,
            ev.ClearAsk: self._on_clear_ask,
            ev.CallFn: self._on_call_fn,
            ev.CallFnTimeout: self._on_call_fn_timeout,
            ev.ClearCallFn: self._on_clear_call_fn,
            ev.ChatSettings: self._on_chat_settings,
            ev.ElementUpsert: self._on_element,
            ev.RemoveElement: self._on_remove_element,
            ev.ActionAdded: self._on_action,
            ev.RemoveAction: self._on_remove_action,
            ev.TokenUsage: self._on_token_usage,
        }
        missing = [event_type.__name__ for event_type in ev.EVENT_TYPES if event_type not in self._handlers]
        if missing:
            raise RuntimeError("no handler for events: {0}".format(", ".join(missing)))

    @property
    def handled_types(self) -> Tuple[Type[Any], ...]:
        return tuple(self._handlers.keys())

    def bind(self, transport: Transport) -> None:
        with self._state.lock:
            self._generation += 1
            generation = self._generation
            self._transport = transport
            for name in ev.EVENT_NAMES:
                transport.on(name, self._listener(name, generation))

    def unbind(self) -> None:
        with self._state.lock:
            self._generation += 1
            self._transport = None

    def handle(self, name: str, args: Sequence[Any], generation: Optional[int] = None) -> bool:
        """Apply one raw inbound event; returns False when it was dropped."""
        with self._state.lock:
            if generation is not None and generation != self._generation:
                self._log_inbound(name, args, level="debug", note="stale_transport")
                return False
            self._log_inbound(name, args)
            try:
                event = ev.parse_event(name, args)
            except ProtocolError as exc:
                self._log_problem(name, "malformed", error_summary(exc))
                return False
            if event is None:
                self._log_problem(name, "unknown_event", "")
                return False
            try:
                topics = self._handlers[type(event)](event)
            except Exception as exc:
                self._log_problem(name, "handler_failed", error_summary(exc))
                return False
        self._state.publish(topics)
        return True

    def _listener(self, name: str, generation: int) -> Callable[..., None]:
        def listener(*args: Any) -> None:
            self.handle(name, args, generation=generation)

        return listener

    def _emit(self, name: str) -> None:
        transport = self._transport
        if transport is None:
            return
        transport.emit(name)
        if self._debug_log is not None:
            self._debug_log.log_event(direction="out", event_name=name, session_id=self._state.session_id)

    # connection

    def _on_connected(self, _event: ev.Connected) -> Topics:
        self._emit(ev.CONNECTION_SUCCESSFUL)
        self._state.error = False
        self._state.connection_state = ConnectionState.CONNECTED
        return (TOPIC_SESSION,)

    def _on_connect_error(self, _event: ev.ConnectError) -> Topics:
        self._state.error = True
        self._state.connection_state = ConnectionState.ERROR
        return (TOPIC_SESSION,)

    def _on_task_start(self, _event: ev.TaskStart) -> Topics:
        self._state.set_loading(True)
        return (TOPIC_SESSION,)

    def _on_task_end(self, _event: ev.TaskEnd) -> Topics:
        self._state.set_loading(False)
        return (TOPIC_SESSION,)

    def _on_reload_event(self, _event: ev.Reload) -> Topics:
        self._emit(ev.CLEAR_SESSION)
        if self._on_reload is not None:
            self._on_reload()
        return (TOPIC_SESSION,)

    # messages

    def _on_resume_thread(self, event: ev.ResumeThread) -> Topics:
        self._reconciler.resume(event.thread)
        return (TOPIC_MESSAGES, TOPIC_ELEMENTS, TOPIC_TASKLISTS, TOPIC_SESSION)

    def _on_new_message(self, event: ev.NewMessage) -> Topics:
        self._state.messages.append(event.message)
        return (TOPIC_MESSAGES,)

    def _on_first_interaction(self, event: ev.FirstInteraction) -> Topics:
        self._state.first_interaction = event.interaction
        self._state.current_thread_id = event.thread_id
        return (TOPIC_SESSION,)

    def _on_update_message(self, event: ev.UpdateMessage) -> Topics:
        if not self._state.messages.update_by_id(str(event.message["id"]), event.message):
            return _NO_CHANGE
        return (TOPIC_MESSAGES,)

    def _on_delete_message(self, event: ev.DeleteMessage) -> Topics:
        if not self._state.messages.delete_by_id(str(event.message["id"])):
            return _NO_CHANGE
        return (TOPIC_MESSAGES,)

    def _on_stream_start(self, event: ev.StreamStart) -> Topics:
        self._state.messages.append(event.message)
        return (TOPIC_MESSAGES,)

    def _on_stream_token(self, event: ev.StreamToken) -> Topics:
        changed = self._state.messages.stream_append(
            event.id,
            event.token,
            is_sequence=event.is_sequence,
            is_input=event.is_input,
        )
        return (TOPIC_MESSAGES,) if changed else _NO_CHANGE

    # interaction

    def _on_ask(self, event: ev.Ask) -> Topics:
        self._state.interaction.install_ask(event.spec, event.message, event.callback)
        return (TOPIC_INTERACTION, TOPIC_MESSAGES, TOPIC_SESSION)

    def _on_ask_timeout(self, _event: ev.AskTimeout) -> Topics:
        self._state.interaction.ask_timeout()
        return (TOPIC_INTERACTION, TOPIC_SESSION)

    def _on_clear_ask(self, _event: ev.ClearAsk) -> Topics:
        self._state.interaction.clear_ask()
        return (TOPIC_INTERACTION, TOPIC_SESSION)

    def _on_call_fn(self, event: ev.CallFn) -> Topics:
        self._state.interaction.install_call_fn(event.name, event.args, event.callback)
        return (TOPIC_INTERACTION,)

    def _on_call_fn_timeout(self, _event: ev.CallFnTimeout) -> Topics:
        self._state.interaction.call_fn_timeout()
        return (TOPIC_INTERACTION,)

    def _on_clear_call_fn(self, _event: ev.ClearCallFn) -> Topics:
        self._state.interaction.clear_call_fn()
        return (TOPIC_INTERACTION,)

    # settings, elements, actions, usage

    def _on_chat_settings(self, event: ev.ChatSettings) -> Topics:
        self._state.replace_chat_settings(event.inputs)
        return (TOPIC_SETTINGS,)

    def _on_element(self, event: ev.ElementUpsert) -> Topics:
        element = dict(event.element)
        element_type = element.get("type")
        if element_type == ELEMENT_TYPE_AVATAR:
            return _NO_CHANGE
        key = element.get("chainlitKey")
        if not element.get("url") and key and self._element_url_resolver is not None:
            element["url"] = self._element_url_resolver(str(key), self._state.session_id)
        if element_type == ELEMENT_TYPE_TASKLIST:
            self._state.tasklists.upsert(element)
            return (TOPIC_TASKLISTS,)
        self._state.elements.upsert(element)
        return (TOPIC_ELEMENTS,)

    def _on_remove_element(self, event: ev.RemoveElement) -> Topics:
        removed_element = self._state.elements.remove_by_id(event.id)
        removed_tasklist = self._state.tasklists.remove_by_id(event.id)
        topics = []
        if removed_element:
            topics.append(TOPIC_ELEMENTS)
        if removed_tasklist:
            topics.append(TOPIC_TASKLISTS)
        return tuple(topics)

    def _on_action(self, event: ev.ActionAdded) -> Topics:
        self._state.actions.append(event.action)
        return (TOPIC_ACTIONS,)

    def _on_remove_action(self, event: ev.RemoveAction) -> Topics:
        if not self._state.actions.remove_first(str(event.action["id"])):
            return _NO_CHANGE
        return (TOPIC_ACTIONS,)

    def _on_token_usage(self, event: ev.TokenUsage) -> Topics:
        self._state.add_token_usage(event.count)
        return (TOPIC_USAGE,)

    # diagnostics

    def _log_inbound(self, name: str, args: Sequence[Any], level: str = "info", note: str = "") -> None:
        if self._debug_log is None:
            return
        data: Dict[str, Any] = {"args": [_loggable(arg) for arg in args]}
        if note:
            data["note"] = note
        self._debug_log.log_event(
            direction="in",
            event_name=name,
            session_id=self._state.session_id,
            data=data,
            level=level,
        )

    def _log_problem(self, name: str, reason: str, detail: str) -> None:
        if self._debug_log is None:
            return
        self._debug_log.write_entry(
            level="warn",
            component="dispatcher",
            kind="event.dropped",
            session_id=self._state.session_id,
            event_name=name,
            message="dropped:{0}:{1}".format(name, reason),
            data={"reason": reason, "detail": detail},
        )


def _loggable(value: Any) -> Any:
    if callable(value):
        return "<ack>"
    return value
