"""Closed catalog of inbound session events and their payload parsing.

Each transport event name maps to exactly one frozen dataclass. ``parse_event``
turns the raw handler arguments delivered by the transport into that variant,
raising ``ProtocolError`` when the payload does not have the expected shape.
Names outside the catalog parse to ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from chatlink.interaction.types import AckCallback
from chatlink.kernel.errors import ProtocolError
from chatlink.kernel.types import Record


@dataclass(frozen=True)
class Thread:
    steps: List[Record] = field(default_factory=list)
    elements: List[Record] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def chat_profile(self) -> str:
        return str(self.metadata.get("chat_profile") or "")


@dataclass(frozen=True)
class Connected:
    pass


@dataclass(frozen=True)
class ConnectError:
    error: Any = None


@dataclass(frozen=True)
class TaskStart:
    pass


@dataclass(frozen=True)
class TaskEnd:
    pass


@dataclass(frozen=True)
class Reload:
    pass


@dataclass(frozen=True)
class ResumeThread:
    thread: Thread


@dataclass(frozen=True)
class NewMessage:
    message: Record


@dataclass(frozen=True)
class FirstInteraction:
    interaction: str
    thread_id: str


@dataclass(frozen=True)
class UpdateMessage:
    message: Record


@dataclass(frozen=True)
class DeleteMessage:
    message: Record


@dataclass(frozen=True)
class StreamStart:
    message: Record


@dataclass(frozen=True)
class StreamToken:
    id: str
    token: str
    is_sequence: bool = False
    is_input: bool = False


@dataclass(frozen=True)
class Ask:
    message: Optional[Record]
    spec: Dict[str, Any]
    callback: Optional[AckCallback] = None


@dataclass(frozen=True)
class AskTimeout:
    pass


@dataclass(frozen=True)
class ClearAsk:
    pass


@dataclass(frozen=True)
class CallFn:
    name: str
    args: Dict[str, Any]
    callback: Optional[AckCallback] = None


@dataclass(frozen=True)
class CallFnTimeout:
    pass


@dataclass(frozen=True)
class ClearCallFn:
    pass


@dataclass(frozen=True)
class ChatSettings:
    inputs: List[Dict[str, Any]]


@dataclass(frozen=True)
class ElementUpsert:
    element: Record


@dataclass(frozen=True)
class RemoveElement:
    id: str


@dataclass(frozen=True)
class ActionAdded:
    action: Record


@dataclass(frozen=True)
class RemoveAction:
    action: Record


@dataclass(frozen=True)
class TokenUsage:
    count: int


InboundEvent = Union[
    Connected,
    ConnectError,
    TaskStart,
    TaskEnd,
    Reload,
    ResumeThread,
    NewMessage,
    FirstInteraction,
    UpdateMessage,
    DeleteMessage,
    StreamStart,
    StreamToken,
    Ask,
    AskTimeout,
    ClearAsk,
    CallFn,
    CallFnTimeout,
    ClearCallFn,
    ChatSettings,
    ElementUpsert,
    RemoveElement,
    ActionAdded,
    RemoveAction,
    TokenUsage,
]

Parser = Callable[[str, Sequence[Any]], InboundEvent]

# Outbound event names.
CONNECTION_SUCCESSFUL = "connection_successful"
CLEAR_SESSION = "clear_session"


def _first(name: str, args: Sequence[Any]) -> Any:
    if not args:
        raise ProtocolError("missing payload", event_name=name)
    return args[0]


def _ack(args: Sequence[Any]) -> Optional[AckCallback]:
    if len(args) > 1 and callable(args[-1]):
        return args[-1]
    return None


def _record(name: str, value: Any, require_id: bool = True) -> Record:
    if not isinstance(value, dict):
        raise ProtocolError("payload is not an object", event_name=name)
    if require_id and value.get("id") in (None, ""):
        raise ProtocolError("payload has no id", event_name=name, field="id")
    return dict(value)


def _record_list(name: str, value: Any, field_name: str) -> List[Record]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProtocolError("expected a list", event_name=name, field=field_name)
    return [_record(name, item) for item in value]


def _no_payload(factory: Callable[[], InboundEvent]) -> Parser:
    return lambda _name, _args: factory()


def _message_event(factory: Callable[[Record], InboundEvent]) -> Parser:
    return lambda name, args: factory(_record(name, _first(name, args)))


def _parse_connect_error(name: str, args: Sequence[Any]) -> InboundEvent:
    return ConnectError(error=args[0] if args else None)


def _parse_resume_thread(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _record(name, _first(name, args), require_id=False)
    metadata = raw.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ProtocolError("thread metadata is not an object", event_name=name, field="metadata")
    return ResumeThread(
        thread=Thread(
            steps=_record_list(name, raw.get("steps"), "steps"),
            elements=_record_list(name, raw.get("elements"), "elements"),
            metadata=dict(metadata),
        )
    )


def _parse_first_interaction(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _record(name, _first(name, args), require_id=False)
    thread_id = raw.get("thread_id", raw.get("threadId"))
    return FirstInteraction(
        interaction=str(raw.get("interaction") or ""),
        thread_id=str(thread_id or ""),
    )


def _parse_stream_token(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _record(name, _first(name, args))
    token = raw.get("token")
    if not isinstance(token, str):
        raise ProtocolError("stream token is not a string", event_name=name, field="token")
    return StreamToken(
        id=str(raw["id"]),
        token=token,
        is_sequence=bool(raw.get("isSequence", False)),
        is_input=bool(raw.get("isInput", False)),
    )


def _parse_ask(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _record(name, _first(name, args), require_id=False)
    message = raw.get("msg")
    spec = raw.get("spec") or {}
    if not isinstance(spec, dict):
        raise ProtocolError("ask spec is not an object", event_name=name, field="spec")
    if message is not None:
        message = _record(name, message, require_id=False)
        # The request is still installed; only an id-less message is left out.
        if message.get("id") in (None, ""):
            message = None
    return Ask(
        message=message,
        spec=dict(spec),
        callback=_ack(args),
    )


def _parse_call_fn(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _record(name, _first(name, args), require_id=False)
    fn_name = raw.get("name")
    if not isinstance(fn_name, str) or not fn_name:
        raise ProtocolError("call_fn has no name", event_name=name, field="name")
    fn_args = raw.get("args") or {}
    if not isinstance(fn_args, dict):
        raise ProtocolError("call_fn args is not an object", event_name=name, field="args")
    return CallFn(name=fn_name, args=dict(fn_args), callback=_ack(args))


def _parse_chat_settings(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _first(name, args)
    if not isinstance(raw, list):
        raise ProtocolError("chat settings is not a list", event_name=name)
    return ChatSettings(inputs=[dict(item) for item in raw if isinstance(item, dict)])


def _parse_remove_element(name: str, args: Sequence[Any]) -> InboundEvent:
    return RemoveElement(id=str(_record(name, _first(name, args))["id"]))


def _parse_token_usage(name: str, args: Sequence[Any]) -> InboundEvent:
    raw = _first(name, args)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ProtocolError("token usage is not an integer", event_name=name)
    if raw < 0:
        raise ProtocolError("token usage is negative", event_name=name)
    return TokenUsage(count=raw)


PARSERS: Dict[str, Parser] = {
    "connect": _no_payload(Connected),
    "connect_error": _parse_connect_error,
    "task_start": _no_payload(TaskStart),
    "task_end": _no_payload(TaskEnd),
    "reload": _no_payload(Reload),
    "resume_thread": _parse_resume_thread,
    "new_message": _message_event(NewMessage),
    "first_interaction": _parse_first_interaction,
    "update_message": _message_event(UpdateMessage),
    "delete_message": _message_event(DeleteMessage),
    "stream_start": _message_event(StreamStart),
    "stream_token": _parse_stream_token,
    "ask": _parse_ask,
    "ask_timeout": _no_payload(AskTimeout),
    "clear_ask": _no_payload(ClearAsk),
    "call_fn": _parse_call_fn,
    "call_fn_timeout": _no_payload(CallFnTimeout),
    "clear_call_fn": _no_payload(ClearCallFn),
    "chat_settings": _parse_chat_settings,
    "element": _message_event(ElementUpsert),
    "remove_element": _parse_remove_element,
    "action": _message_event(ActionAdded),
    "remove_action": _message_event(RemoveAction),
    "token_usage": _parse_token_usage,
}

EVENT_NAMES: Tuple[str, ...] = tuple(PARSERS.keys())

EVENT_TYPES: Tuple[Type[Any], ...] = (
    Connected,
    ConnectError,
    TaskStart,
    TaskEnd,
    Reload,
    ResumeThread,
    NewMessage,
    FirstInteraction,
    UpdateMessage,
    DeleteMessage,
    StreamStart,
    StreamToken,
    Ask,
    AskTimeout,
    ClearAsk,
    CallFn,
    CallFnTimeout,
    ClearCallFn,
    ChatSettings,
    ElementUpsert,
    RemoveElement,
    ActionAdded,
    RemoveAction,
    TokenUsage,
)


def parse_event(name: str, args: Sequence[Any]) -> Optional[InboundEvent]:
    parser = PARSERS.get(str(name))
    if parser is None:
        return None
    return parser(str(name), tuple(args))
