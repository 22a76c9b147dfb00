from __future__ import annotations

import pytest

from chatlink.kernel.errors import ProtocolError
from chatlink.protocol import events as ev


def test_catalog_names_and_types_line_up():
    assert len(ev.EVENT_NAMES) == len(ev.EVENT_TYPES) == 24
    assert "token_usage" in ev.EVENT_NAMES
    assert "connect" in ev.EVENT_NAMES


def test_unknown_event_parses_to_none():
    assert ev.parse_event("not_an_event", ({"id": "x"},)) is None


def test_stream_token_flags_default_to_false():
    event = ev.parse_event("stream_token", ({"id": "m1", "token": "hi"},))

    assert event == ev.StreamToken(id="m1", token="hi", is_sequence=False, is_input=False)


def test_ask_picks_trailing_ack_callable():
    answers = []
    event = ev.parse_event("ask", ({"msg": {"id": "q"}, "spec": {"type": "text"}}, answers.append))

    assert isinstance(event, ev.Ask)
    assert event.message == {"id": "q"}
    assert event.callback is not None
    event.callback("yes")
    assert answers == ["yes"]


def test_ask_drops_message_without_id():
    event = ev.parse_event("ask", ({"msg": {"output": "Name?"}, "spec": {}}, lambda _value: None))

    assert isinstance(event, ev.Ask)
    assert event.message is None
    assert event.callback is not None


def test_call_fn_requires_name():
    with pytest.raises(ProtocolError) as exc_info:
        ev.parse_event("call_fn", ({"args": {}},))
    assert exc_info.value.details["field"] == "name"


def test_first_interaction_accepts_both_thread_id_spellings():
    snake = ev.parse_event("first_interaction", ({"interaction": "hi", "thread_id": "t1"},))
    camel = ev.parse_event("first_interaction", ({"interaction": "hi", "threadId": "t2"},))

    assert snake == ev.FirstInteraction(interaction="hi", thread_id="t1")
    assert camel == ev.FirstInteraction(interaction="hi", thread_id="t2")


def test_resume_thread_tolerates_missing_lists():
    event = ev.parse_event("resume_thread", ({"id": "t1", "metadata": None},))

    assert isinstance(event, ev.ResumeThread)
    assert event.thread.steps == []
    assert event.thread.elements == []
    assert event.thread.chat_profile == ""


@pytest.mark.parametrize(
    "name,args",
    [
        ("new_message", ()),
        ("new_message", ("text",)),
        ("update_message", ({"output": "no id"},)),
        ("stream_token", ({"id": "m1", "token": 3},)),
        ("token_usage", ("12",)),
        ("token_usage", (-4,)),
        ("token_usage", (True,)),
        ("chat_settings", ({"id": "x"},)),
        ("resume_thread", ({"steps": "nope"},)),
    ],
)
def test_malformed_payloads_raise_protocol_error(name, args):
    with pytest.raises(ProtocolError):
        ev.parse_event(name, args)
