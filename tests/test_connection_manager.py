from __future__ import annotations

import json
import threading
from typing import List

import pytest

from chatlink.config import Settings
from chatlink.kernel.errors import ChatlinkError, TransportError
from chatlink.protocol.events import EVENT_NAMES
from chatlink.session.client import ChatSession
from chatlink.session.connection import CoalescedCall
from chatlink.session.state import ConnectionState
from chatlink.transport.base import Handshake
from chatlink.transport.memory import InMemoryTransport


def test_connect_builds_handshake_from_session_state(session, factory):
    session.set_thread_to_resume("thread-9")
    session.set_chat_profile("GPT 4/o")

    session.connect(user_env={"OPENAI_KEY": "k"}, access_token="jwt-1", transports=["polling"])

    handshake = factory.latest.handshake
    auth = handshake.auth_payload()
    assert auth == {
        "token": "jwt-1",
        "clientType": "webapp",
        "sessionId": "sess-1",
        "threadId": "thread-9",
        "userEnv": json.dumps({"OPENAI_KEY": "k"}, separators=(",", ":")),
        "chatProfile": "GPT%204%2Fo",
    }
    assert handshake.transports == ["polling"]
    assert session.snapshot().connection_state == ConnectionState.CONNECTING


def test_handshake_defaults_to_empty_thread_and_profile():
    auth = Handshake(client_type="webapp", session_id="s").auth_payload()

    assert auth["threadId"] == ""
    assert auth["chatProfile"] == ""
    assert auth["userEnv"] == "{}"
    assert auth["token"] is None


def test_connect_registers_every_catalog_event(session, factory):
    transport = session.connect()

    assert transport.listener_count() == len(EVENT_NAMES)


def test_reconnect_tears_down_old_transport_before_opening_new(settings):
    order: List[str] = []
    opened: List[InMemoryTransport] = []

    class TracingTransport(InMemoryTransport):
        def remove_all_listeners(self) -> None:
            order.append("remove:{0}".format(opened.index(self)))
            super().remove_all_listeners()

        def close(self) -> None:
            order.append("close:{0}".format(opened.index(self)))
            super().close()

    def tracing_factory(handshake: Handshake) -> InMemoryTransport:
        order.append("open:{0}".format(len(opened)))
        transport = TracingTransport(handshake)
        opened.append(transport)
        return transport

    chat = ChatSession(settings, tracing_factory)
    chat.connect()
    chat.connect()

    assert order == ["open:0", "remove:0", "close:0", "open:1"]
    assert opened[0].closed is True
    assert opened[0].listener_count() == 0
    assert opened[1].listener_count() == len(EVENT_NAMES)
    chat.close()


def test_events_from_replaced_transport_are_dropped(session, factory):
    session.connect()
    first = factory.latest
    first_handlers = dict(first._handlers)
    session.connect()

    first_handlers["new_message"][0]({"id": "ghost"})

    assert session.snapshot().messages == []


def test_disconnect_is_immediate_and_idempotent(session, factory):
    session.connect()
    transport = factory.latest
    handler = transport._handlers["new_message"][0]

    assert session.disconnect() is True
    assert session.disconnect() is False

    handler({"id": "late"})
    snapshot = session.snapshot()
    assert transport.closed is True
    assert snapshot.messages == []
    assert snapshot.connection_state == ConnectionState.IDLE


def test_disconnect_without_transport_is_noop(session, factory):
    assert session.disconnect() is False
    assert factory.opened == []


def test_factory_failure_sets_error_and_raises(settings):
    def broken_factory(_handshake: Handshake):
        raise OSError("refused")

    chat = ChatSession(settings, broken_factory)
    with pytest.raises(TransportError):
        chat.connect()

    snapshot = chat.snapshot()
    assert snapshot.error is True
    assert snapshot.connection_state == ConnectionState.ERROR


def test_coalesced_connect_opens_once_with_last_arguments(session, factory):
    for index in range(5):
        session.connect_coalesced(user_env={"n": str(index)}, access_token="tok-{0}".format(index))

    assert factory.opened == []
    assert session.connection.coalesced.flush() is True

    assert len(factory.opened) == 1
    handshake = factory.latest.handshake
    assert handshake.access_token == "tok-4"
    assert handshake.user_env == {"n": "4"}


def test_coalesced_connect_fires_after_window(session, factory):
    fired = threading.Event()
    session.subscribe("session", lambda _topic, _snap: fired.set())

    for index in range(5):
        session.connect_coalesced(access_token="tok-{0}".format(index))

    assert fired.wait(timeout=5)
    assert len(factory.opened) == 1
    assert factory.latest.handshake.access_token == "tok-4"


def test_disconnect_cancels_pending_coalesced_connect(session, factory):
    session.connect_coalesced(access_token="tok")

    session.disconnect()

    assert session.connection.coalesced.pending is False
    assert session.connection.coalesced.flush() is False
    assert factory.opened == []


def test_coalesced_call_flush_and_cancel():
    calls = []
    coalesced = CoalescedCall(lambda *args, **kwargs: calls.append((args, kwargs)), window_sec=60)

    coalesced(1, a=1)
    coalesced(2, a=2)
    assert coalesced.pending is True
    assert coalesced.cancel() is True
    assert coalesced.flush() is False

    coalesced(3, a=3)
    assert coalesced.flush() is True
    assert calls == [((3,), {"a": 3})]


def _join_timers() -> None:
    for thread in threading.enumerate():
        if isinstance(thread, threading.Timer):
            thread.join(timeout=5)


def test_coalesced_connect_failure_stays_on_timer_thread(tmp_path, monkeypatch):
    escaped: List[str] = []
    monkeypatch.setattr(threading, "excepthook", lambda hook_args: escaped.append(hook_args.exc_type.__name__))

    def broken_factory(_handshake: Handshake):
        raise OSError("refused")

    settings = Settings(config_root=tmp_path, connect_debounce_ms=10)
    chat = ChatSession(settings, broken_factory, session_id="s1")
    failed = threading.Event()
    chat.subscribe("session", lambda _topic, snap: snap.error and failed.set())

    chat.connect_coalesced(access_token="tok")

    assert failed.wait(timeout=5)
    _join_timers()
    assert escaped == []
    assert chat.snapshot().connection_state == ConnectionState.ERROR
    rows = [json.loads(line) for line in chat.debug_log.active_log_file.read_text(encoding="utf-8").splitlines()]
    assert "coalesced_connect_failed" in [row["event_name"] for row in rows]
    chat.close()


def test_coalesced_call_routes_timer_errors_to_hook():
    errors: List[ChatlinkError] = []
    done = threading.Event()

    def failing() -> None:
        raise TransportError("no route", reason="test")

    def record(exc: ChatlinkError) -> None:
        errors.append(exc)
        done.set()

    coalesced = CoalescedCall(failing, window_sec=0.01, on_error=record)
    coalesced()

    assert done.wait(timeout=5)
    assert [type(exc) for exc in errors] == [TransportError]

    coalesced = CoalescedCall(failing, window_sec=60, on_error=record)
    coalesced()
    with pytest.raises(TransportError):
        coalesced.flush()
