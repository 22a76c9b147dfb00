"""Presentation helpers for chatlink CLI output."""

from __future__ import annotations

import io
from dataclasses import asdict
from enum import Enum
from typing import Any, Dict, Iterable, Optional, TextIO

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from chatlink.kernel.types import Record
from chatlink.session.state import SessionSnapshot

_PREVIEW_CHARS = 60


def render_notice(level: str, text: str) -> str:
    prefix = {
        "info": "Info",
        "warn": "Warning",
        "error": "Error",
        "success": "Success",
    }.get(level, "Info")
    return "{0}: {1}".format(prefix, text)


def snapshot_to_dict(snapshot: SessionSnapshot) -> Dict[str, Any]:
    data = asdict(snapshot)
    for key, value in list(data.items()):
        if isinstance(value, Enum):
            data[key] = value.value
    return data


def _preview(message: Record) -> str:
    text = str(message.get("output") or message.get("input") or "")
    text = " ".join(text.split())
    if len(text) > _PREVIEW_CHARS:
        return text[: _PREVIEW_CHARS - 3] + "..."
    return text


def _is_tty(stream: TextIO, forced: Optional[bool]) -> bool:
    if forced is not None:
        return forced
    isatty = getattr(stream, "isatty", None)
    if callable(isatty):
        try:
            return bool(isatty())
        except Exception:
            return False
    return False


def _summary_lines(snapshot: SessionSnapshot) -> Iterable[str]:
    yield "session={0} state={1} error={2} loading={3}".format(
        snapshot.session_id,
        snapshot.connection_state.value,
        snapshot.error,
        snapshot.loading,
    )
    yield "thread={0} profile={1} tokens={2}".format(
        snapshot.current_thread_id or "-",
        snapshot.chat_profile or "-",
        snapshot.token_count,
    )
    interaction = snapshot.interaction
    yield "ask_pending={0} call_fn_pending={1}{2}".format(
        interaction.ask_pending,
        interaction.call_fn_pending,
        " call_fn={0}".format(interaction.call_fn_name) if interaction.call_fn_name else "",
    )
    yield "elements={0} tasklists={1} actions={2} settings={3}".format(
        len(snapshot.elements),
        len(snapshot.tasklists),
        len(snapshot.actions),
        len(snapshot.chat_settings_inputs),
    )


def render_snapshot(snapshot: SessionSnapshot, stream: TextIO, is_tty: Optional[bool] = None) -> None:
    if _is_tty(stream, is_tty):
        table = Table(box=box.SIMPLE, expand=False)
        table.add_column("id", style="dim")
        table.add_column("type")
        table.add_column("content")
        for message in snapshot.messages:
            table.add_row(str(message.get("id") or ""), str(message.get("type") or ""), _preview(message))
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(
            Panel(
                Group("\n".join(_summary_lines(snapshot)), table),
                title="Session",
                border_style="cyan",
                box=box.ROUNDED,
            )
        )
        return

    for line in _summary_lines(snapshot):
        stream.write(line + "\n")
    stream.write("messages={0}\n".format(len(snapshot.messages)))
    for message in snapshot.messages:
        stream.write(
            "- {0} [{1}] {2}\n".format(
                message.get("id") or "",
                message.get("type") or "",
                _preview(message),
            )
        )
    stream.flush()


def preview_rendered_snapshot(snapshot: SessionSnapshot) -> str:
    buffer = io.StringIO()
    render_snapshot(snapshot, stream=buffer, is_tty=False)
    return buffer.getvalue()
