from __future__ import annotations

import json
from pathlib import Path

from chatlink.kernel.debug_log import DebugLogWriter, mask_payload
from chatlink.session.client import ChatSession
from chatlink.config import Settings
from chatlink.transport.memory import InMemoryTransportFactory


def _rows(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").strip().splitlines()]


def test_default_redaction_masks_secrets_but_keeps_stream_tokens(tmp_path: Path):
    writer = DebugLogWriter(logs_dir=tmp_path / "logs", enabled=True, redaction="default")

    writer.write_entry(
        level="info",
        component="connection",
        kind="lifecycle",
        session_id="s1",
        message="Authorization: Bearer top-secret sk-1234567890ABCDEF",
        data={
            "access_token": "jwt-abc",
            "nested": {"api_key": "k", "normal": "ok"},
            "token": "Hello",
        },
    )

    row = _rows(writer.active_log_file)[0]
    assert "top-secret" not in row["message"]
    assert "sk-1234567890ABCDEF" not in row["message"]
    assert row["data"]["access_token"] == "***REDACTED***"
    assert row["data"]["nested"]["api_key"] == "***REDACTED***"
    assert row["data"]["nested"]["normal"] == "ok"
    assert row["data"]["token"] == "Hello"


def test_strict_redaction_masks_every_leaf():
    masked = mask_payload({"a": "x", "b": [1, {"c": 2}]}, strict=True)

    assert masked == {"a": "***REDACTED***", "b": ["***REDACTED***", {"c": "***REDACTED***"}]}


def test_rotation_keeps_bounded_file_count(tmp_path: Path):
    writer = DebugLogWriter(logs_dir=tmp_path, enabled=True, max_file_bytes=200, max_files=2)

    for index in range(20):
        writer.write_entry(
            level="info",
            component="test",
            kind="diagnostic",
            session_id="s",
            message="entry-{0}".format(index),
        )

    status = writer.status()
    assert status["logs_write_errors"] == 0
    assert len(status["logs_rotated_files"]) == 2
    assert not Path("{0}.3".format(writer.active_log_file)).exists()


def test_disabled_writer_creates_nothing(tmp_path: Path):
    writer = DebugLogWriter(logs_dir=tmp_path / "logs", enabled=False)
    writer.write_entry(level="info", component="x", kind="y", session_id="s", message="m")

    assert not (tmp_path / "logs").exists()
    assert writer.status()["logs_enabled"] is False


def test_session_logs_handshake_without_access_token(tmp_path: Path):
    settings = Settings(config_root=tmp_path, logs_enabled=True)
    factory = InMemoryTransportFactory()
    chat = ChatSession(settings, factory, session_id="s1")

    transport = chat.connect(access_token="jwt-secret-value")
    transport.deliver("new_message", {"id": "m1"})
    chat.dispatcher.handle("token_usage", ("NaN",))
    chat.close()

    text = chat.debug_log.active_log_file.read_text(encoding="utf-8")
    assert "jwt-secret-value" not in text
    rows = [json.loads(line) for line in text.strip().splitlines()]
    names = [(row["kind"], row["event_name"]) for row in rows]
    assert ("lifecycle", "connect") in names
    assert ("event.in", "new_message") in names
    assert ("event.dropped", "token_usage") in names
    assert ("lifecycle", "disconnect") in names
