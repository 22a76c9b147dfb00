from __future__ import annotations

import io

from chatlink.kernel.eventbus import ALL_TOPICS, EventBus
from chatlink.session.state import SessionState, default_settings_value
from chatlink.ui.render import preview_rendered_snapshot, render_snapshot, snapshot_to_dict


def test_topic_listeners_and_wildcard_called_once_per_publish():
    bus = EventBus()
    calls = []
    bus.subscribe("messages", lambda topic, payload: calls.append(("messages", topic, payload)))
    bus.subscribe("elements", lambda topic, payload: calls.append(("elements", topic, payload)))
    bus.subscribe(ALL_TOPICS, lambda topic, payload: calls.append(("all", topic, payload)))

    bus.publish(["messages", "elements", "messages"], "snap")

    assert calls == [
        ("messages", "messages", "snap"),
        ("elements", "elements", "snap"),
        ("all", ALL_TOPICS, "snap"),
    ]


def test_unsubscribe_stops_notifications():
    bus = EventBus()
    calls = []
    unsubscribe = bus.subscribe("usage", lambda topic, payload: calls.append(payload))

    bus.publish(["usage"], 1)
    unsubscribe()
    unsubscribe()
    bus.publish(["usage"], 2)

    assert calls == [1]
    assert bus.listener_count("usage") == 0


def test_publish_with_no_topics_is_silent():
    state = SessionState()
    calls = []
    state.subscribe(ALL_TOPICS, lambda topic, payload: calls.append(topic))

    state.publish([])

    assert calls == []


def test_snapshot_is_detached_from_live_state():
    state = SessionState(session_id="s1")
    state.messages.append({"id": "m1", "output": "x"})
    snapshot = state.snapshot()

    state.messages.append({"id": "m2"})
    state.add_token_usage(3)

    assert [m["id"] for m in snapshot.messages] == ["m1"]
    assert snapshot.token_count == 0
    assert state.snapshot().token_count == 3


def test_default_settings_value_skips_inputs_without_id():
    values = default_settings_value([{"id": "a", "initial": 1}, {"initial": 2}, {"id": "b"}])

    assert values == {"a": 1, "b": None}


def test_snapshot_rendering_helpers():
    state = SessionState(session_id="s1")
    state.messages.append({"id": "m1", "type": "assistant_message", "output": "line one\nline two"})

    data = snapshot_to_dict(state.snapshot())
    rendered = preview_rendered_snapshot(state.snapshot())

    assert data["connection_state"] == "idle"
    assert "session=s1 state=idle" in rendered
    assert "- m1 [assistant_message] line one line two" in rendered


def test_tty_rendering_uses_rich_panel():
    state = SessionState(session_id="s1")
    state.messages.append({"id": "m1", "output": "hello"})
    stream = io.StringIO()

    render_snapshot(state.snapshot(), stream=stream, is_tty=True)

    text = stream.getvalue()
    assert "Session" in text
    assert "m1" in text
    assert "hello" in text
