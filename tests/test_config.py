from __future__ import annotations

from pathlib import Path

import pytest

from chatlink.config import (
    DEFAULT_CONNECT_DEBOUNCE_MS,
    initialize_config,
    load_settings,
    resolve_config_root,
)
from chatlink.kernel.errors import ConfigError


def test_missing_config_yields_defaults(tmp_path: Path):
    settings = load_settings(workspace_dir=tmp_path)

    assert settings.config_root == resolve_config_root(tmp_path)
    assert settings.client_type == "webapp"
    assert settings.connect_debounce_ms == DEFAULT_CONNECT_DEBOUNCE_MS
    assert settings.connect_debounce_sec == pytest.approx(0.2)
    assert settings.transports == ["websocket"]
    assert settings.resolved_logs_dir == settings.config_root / "logs"


def test_initialized_config_round_trips_defaults(isolated_env):
    settings = load_settings()

    assert settings.config_file.is_file()
    assert settings.as_dict()["config_file_exists"] is True
    assert settings.logs_redaction == "default"


def test_init_refuses_to_overwrite_without_force(isolated_env):
    with pytest.raises(ConfigError):
        initialize_config(workspace_dir=isolated_env["workspace"])

    path = initialize_config(workspace_dir=isolated_env["workspace"], force=True)
    assert path.is_file()


def test_invalid_values_fall_back_to_defaults(tmp_path: Path):
    root = resolve_config_root(tmp_path)
    root.mkdir(parents=True)
    (root / "config.toml").write_text(
        "\n".join(
            [
                "[session]",
                'client_type = "  "',
                'http_endpoint = "https://chat.example.com/"',
                "connect_debounce_ms = -5",
                "transports = []",
                "[logs]",
                'enabled = "off"',
                'redaction = "loud"',
                "max_files = 0",
                'dir = "trace"',
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(workspace_dir=tmp_path)

    assert settings.client_type == "webapp"
    assert settings.http_endpoint == "https://chat.example.com"
    assert settings.connect_debounce_ms == DEFAULT_CONNECT_DEBOUNCE_MS
    assert settings.transports == ["websocket"]
    assert settings.logs_enabled is False
    assert settings.logs_redaction == "default"
    assert settings.logs_max_files == 5
    assert settings.resolved_logs_dir == root.resolve() / "trace"


def test_broken_toml_raises_config_error(tmp_path: Path):
    root = resolve_config_root(tmp_path)
    root.mkdir(parents=True)
    (root / "config.toml").write_text("[session\nclient_type = ", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(workspace_dir=tmp_path)
