"""Typer CLI entrypoints for chatlink."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import typer

from chatlink.config import initialize_config, load_settings
from chatlink.kernel.errors import ConfigError, ProtocolError
from chatlink.protocol.events import EVENT_NAMES
from chatlink.session.client import ChatSession
from chatlink.transport.memory import InMemoryTransportFactory
from chatlink.ui.render import render_notice, render_snapshot, snapshot_to_dict

ACK_EVENTS = ("ask", "call_fn")

app = typer.Typer(no_args_is_help=True, help="chatlink session sync tools")


def _load_settings_or_exit():
    try:
        return load_settings()
    except ConfigError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=2)


def read_recording(path: Path) -> List[Tuple[str, List[Any]]]:
    """Parse a JSONL recording of ``{"event": name, "args": [...]}`` lines."""
    entries: List[Tuple[str, List[Any]]] = []
    for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ProtocolError("line {0} is not JSON".format(number), reason=str(exc)) from exc
        if not isinstance(row, dict) or not isinstance(row.get("event"), str):
            raise ProtocolError("line {0} has no event name".format(number), field="event")
        args = row.get("args", [])
        if not isinstance(args, list):
            args = [args]
        entries.append((row["event"], args))
    return entries


@app.command("init")
def init_command(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    try:
        config_file = initialize_config(force=force)
    except ConfigError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=2)
    typer.echo(render_notice("success", "wrote {0}".format(config_file)))


@app.command("config")
def config_command() -> None:
    settings = _load_settings_or_exit()
    typer.echo(json.dumps(settings.as_dict(), ensure_ascii=False, indent=2))


@app.command("replay")
def replay_command(
    recording: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL event recording"),
    as_json: bool = typer.Option(False, "--json", help="Print the final snapshot as JSON"),
) -> None:
    settings = _load_settings_or_exit()
    try:
        entries = read_recording(recording)
    except ProtocolError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=2)

    factory = InMemoryTransportFactory()
    session = ChatSession(settings, factory)
    session.connect(user_env={})
    transport = factory.latest

    acks: Dict[str, List[Any]] = {name: [] for name in ACK_EVENTS}
    skipped = 0
    for name, args in entries:
        if name not in EVENT_NAMES:
            skipped += 1
        if name in ACK_EVENTS:
            args = list(args) + [acks[name].append]
        transport.deliver(name, *args)

    snapshot = session.snapshot()
    session.close()

    if as_json:
        payload = snapshot_to_dict(snapshot)
        payload["replay"] = {
            "events": len(entries),
            "unknown_events": skipped,
            "emitted": transport.emitted_names(),
        }
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
        return

    render_snapshot(snapshot, stream=sys.stdout)
    if skipped:
        typer.echo(render_notice("warn", "{0} unknown event(s) ignored".format(skipped)))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
