"""Session context object owning every synchronized collection."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from chatlink.interaction.bridge import InteractionBridge
from chatlink.interaction.types import InteractionSnapshot
from chatlink.kernel.eventbus import EventBus, Listener, Unsubscribe
from chatlink.kernel.types import Record, StateEventSink
from chatlink.store.collection import ActionCollection, UpsertCollection
from chatlink.store.messages import MessageStore

TOPIC_MESSAGES = "messages"
TOPIC_ELEMENTS = "elements"
TOPIC_TASKLISTS = "tasklists"
TOPIC_ACTIONS = "actions"
TOPIC_INTERACTION = "interaction"
TOPIC_SESSION = "session"
TOPIC_SETTINGS = "settings"
TOPIC_USAGE = "usage"

TOPICS = (
    TOPIC_MESSAGES,
    TOPIC_ELEMENTS,
    TOPIC_TASKLISTS,
    TOPIC_ACTIONS,
    TOPIC_INTERACTION,
    TOPIC_SESSION,
    TOPIC_SETTINGS,
    TOPIC_USAGE,
)


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of session state handed to the presentation layer."""

    session_id: str
    connection_state: ConnectionState = ConnectionState.IDLE
    error: bool = False
    loading: bool = False
    thread_id_to_resume: str = ""
    current_thread_id: str = ""
    first_interaction: str = ""
    chat_profile: str = ""
    token_count: int = 0
    messages: List[Record] = field(default_factory=list)
    elements: List[Record] = field(default_factory=list)
    tasklists: List[Record] = field(default_factory=list)
    actions: List[Record] = field(default_factory=list)
    chat_settings_inputs: List[Dict[str, Any]] = field(default_factory=list)
    chat_settings_value: Dict[str, Any] = field(default_factory=dict)
    interaction: InteractionSnapshot = field(default_factory=InteractionSnapshot)

    @property
    def connected(self) -> bool:
        return self.connection_state == ConnectionState.CONNECTED


def default_settings_value(inputs: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for item in inputs:
        input_id = item.get("id")
        if input_id in (None, ""):
            continue
        values[str(input_id)] = item.get("initial")
    return values


class SessionState:
    """Holds collections and scalar cells for one logical chat session.

    ``lock`` serializes every mutation; callers that change several cells for
    one inbound event hold it for the whole event and then ``publish`` once.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        interaction_sink: Optional[StateEventSink] = None,
    ) -> None:
        self.lock = threading.RLock()
        self.session_id = session_id or str(uuid.uuid4())
        self.connection_state = ConnectionState.IDLE
        self.error = False
        self.loading = False
        self.thread_id_to_resume = ""
        self.current_thread_id = ""
        self.first_interaction = ""
        self.chat_profile = ""
        self.token_count = 0
        self.chat_settings_inputs: List[Dict[str, Any]] = []
        self.chat_settings_value: Dict[str, Any] = {}
        self.messages = MessageStore()
        self.elements = UpsertCollection()
        self.tasklists = UpsertCollection()
        self.actions = ActionCollection()
        self.interaction = InteractionBridge(
            self.messages,
            set_loading=self.set_loading,
            event_sink=interaction_sink,
        )
        self._bus = EventBus()

    def set_loading(self, value: bool) -> None:
        with self.lock:
            self.loading = bool(value)

    def add_token_usage(self, count: int) -> int:
        with self.lock:
            self.token_count += max(0, int(count))
            return self.token_count

    def replace_chat_settings(self, inputs: List[Dict[str, Any]]) -> None:
        with self.lock:
            self.chat_settings_inputs = [dict(item) for item in inputs]
            self.chat_settings_value = default_settings_value(self.chat_settings_inputs)

    def snapshot(self) -> SessionSnapshot:
        with self.lock:
            return SessionSnapshot(
                session_id=self.session_id,
                connection_state=self.connection_state,
                error=self.error,
                loading=self.loading,
                thread_id_to_resume=self.thread_id_to_resume,
                current_thread_id=self.current_thread_id,
                first_interaction=self.first_interaction,
                chat_profile=self.chat_profile,
                token_count=self.token_count,
                messages=self.messages.items(),
                elements=self.elements.items(),
                tasklists=self.tasklists.items(),
                actions=self.actions.items(),
                chat_settings_inputs=[dict(item) for item in self.chat_settings_inputs],
                chat_settings_value=dict(self.chat_settings_value),
                interaction=self.interaction.snapshot(),
            )

    def subscribe(self, topic: str, listener: Listener) -> Unsubscribe:
        return self._bus.subscribe(topic, listener)

    def publish(self, topics: Iterable[str]) -> None:
        changed = tuple(topics)
        if not changed:
            return
        self._bus.publish(changed, self.snapshot())
