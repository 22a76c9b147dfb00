from __future__ import annotations

from pathlib import Path

import pytest

from chatlink.config import Settings, initialize_config, resolve_config_root
from chatlink.session.client import ChatSession
from chatlink.transport.memory import InMemoryTransportFactory


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    workspace = tmp_path / "workspace"
    workspace.mkdir(parents=True, exist_ok=True)

    monkeypatch.chdir(workspace)
    initialize_config(workspace_dir=workspace)

    return {
        "workspace": workspace,
        "config_root": resolve_config_root(workspace),
    }


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(config_root=tmp_path / ".chatlink", logs_enabled=False, connect_debounce_ms=50)


@pytest.fixture
def factory() -> InMemoryTransportFactory:
    return InMemoryTransportFactory()


@pytest.fixture
def session(settings: Settings, factory: InMemoryTransportFactory) -> ChatSession:
    chat = ChatSession(settings, factory, session_id="sess-1")
    yield chat
    chat.close()
