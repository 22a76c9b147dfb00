"""Configuration loading and directory resolution for chatlink."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

try:  # pragma: no cover - exercised on Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Python 3.9/3.10
    import tomli as tomllib  # type: ignore[no-redef]

from chatlink.kernel.debug_log import REDACTION_MODES
from chatlink.kernel.errors import ConfigError

CONFIG_DIR_NAME = ".chatlink"
CONFIG_FILE_NAME = "config.toml"
LOGS_DIR_NAME = "logs"

DEFAULT_CLIENT_TYPE = "webapp"
DEFAULT_HTTP_ENDPOINT = ""
DEFAULT_CONNECT_DEBOUNCE_MS = 200
DEFAULT_TRANSPORTS = ("websocket",)
DEFAULT_LOGS_ENABLED = True
DEFAULT_LOGS_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_LOGS_MAX_FILES = 5
DEFAULT_LOGS_REDACTION = "default"


@dataclass
class Settings:
    """Resolved settings for one chat session client."""

    config_root: Path
    client_type: str = DEFAULT_CLIENT_TYPE
    http_endpoint: str = DEFAULT_HTTP_ENDPOINT
    connect_debounce_ms: int = DEFAULT_CONNECT_DEBOUNCE_MS
    transports: List[str] = field(default_factory=lambda: list(DEFAULT_TRANSPORTS))
    logs_enabled: bool = DEFAULT_LOGS_ENABLED
    logs_dir: Optional[Path] = None
    logs_max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    logs_max_files: int = DEFAULT_LOGS_MAX_FILES
    logs_redaction: str = DEFAULT_LOGS_REDACTION

    @property
    def config_file(self) -> Path:
        return self.config_root / CONFIG_FILE_NAME

    @property
    def resolved_logs_dir(self) -> Path:
        return self.logs_dir or (self.config_root / LOGS_DIR_NAME)

    @property
    def connect_debounce_sec(self) -> float:
        return self.connect_debounce_ms / 1000.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "config_root": str(self.config_root),
            "config_file_exists": self.config_file.is_file(),
            "client_type": self.client_type,
            "http_endpoint": self.http_endpoint,
            "connect_debounce_ms": self.connect_debounce_ms,
            "transports": list(self.transports),
            "logs_enabled": self.logs_enabled,
            "logs_dir": str(self.resolved_logs_dir),
            "logs_max_file_bytes": self.logs_max_file_bytes,
            "logs_max_files": self.logs_max_files,
            "logs_redaction": self.logs_redaction,
        }


def resolve_config_root(workspace_dir: Optional[Path] = None) -> Path:
    return (workspace_dir or Path.cwd()).resolve() / CONFIG_DIR_NAME


def _safe_positive_int(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _safe_non_negative_int(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _safe_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def _safe_string(value: object, default: str) -> str:
    if not isinstance(value, str):
        return default
    return value.strip() or default


def _safe_string_list(value: object, default: List[str]) -> List[str]:
    if not isinstance(value, list):
        return list(default)
    items = [str(item).strip() for item in value if str(item).strip()]
    return items or list(default)


def _safe_redaction(value: object, default: str) -> str:
    candidate = str(value or "").strip().lower()
    return candidate if candidate in REDACTION_MODES else default


def _section(data: Dict[str, object], name: str) -> Dict[str, object]:
    value = data.get(name)
    return dict(value) if isinstance(value, dict) else {}


def parse_settings(data: Dict[str, object], config_root: Path) -> Settings:
    session = _section(data, "session")
    logs = _section(data, "logs")

    logs_dir: Optional[Path] = None
    raw_logs_dir = logs.get("dir")
    if isinstance(raw_logs_dir, str) and raw_logs_dir.strip():
        candidate = Path(raw_logs_dir.strip()).expanduser()
        logs_dir = candidate if candidate.is_absolute() else config_root / candidate

    return Settings(
        config_root=config_root,
        client_type=_safe_string(session.get("client_type"), DEFAULT_CLIENT_TYPE),
        http_endpoint=_safe_string(session.get("http_endpoint"), DEFAULT_HTTP_ENDPOINT).rstrip("/"),
        connect_debounce_ms=_safe_non_negative_int(
            session.get("connect_debounce_ms"), DEFAULT_CONNECT_DEBOUNCE_MS
        ),
        transports=_safe_string_list(session.get("transports"), list(DEFAULT_TRANSPORTS)),
        logs_enabled=_safe_bool(logs.get("enabled"), DEFAULT_LOGS_ENABLED),
        logs_dir=logs_dir,
        logs_max_file_bytes=_safe_positive_int(logs.get("max_file_bytes"), DEFAULT_LOGS_MAX_FILE_BYTES),
        logs_max_files=_safe_positive_int(logs.get("max_files"), DEFAULT_LOGS_MAX_FILES),
        logs_redaction=_safe_redaction(logs.get("redaction"), DEFAULT_LOGS_REDACTION),
    )


def load_settings(workspace_dir: Optional[Path] = None, config_root: Optional[Path] = None) -> Settings:
    """Load settings; a missing config file yields defaults."""
    root = (config_root or resolve_config_root(workspace_dir)).resolve()
    config_file = root / CONFIG_FILE_NAME
    if not config_file.is_file():
        return Settings(config_root=root)

    try:
        parsed = tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError("invalid config file: {0}".format(config_file), reason=str(exc)) from exc
    return parse_settings(parsed, root)


def render_default_config() -> str:
    return "\n".join(
        [
            "[session]",
            'client_type = "{0}"'.format(DEFAULT_CLIENT_TYPE),
            'http_endpoint = "{0}"'.format(DEFAULT_HTTP_ENDPOINT),
            "connect_debounce_ms = {0}".format(DEFAULT_CONNECT_DEBOUNCE_MS),
            "transports = [{0}]".format(", ".join('"{0}"'.format(item) for item in DEFAULT_TRANSPORTS)),
            "",
            "[logs]",
            "enabled = {0}".format("true" if DEFAULT_LOGS_ENABLED else "false"),
            "max_file_bytes = {0}".format(DEFAULT_LOGS_MAX_FILE_BYTES),
            "max_files = {0}".format(DEFAULT_LOGS_MAX_FILES),
            'redaction = "{0}"'.format(DEFAULT_LOGS_REDACTION),
            "",
        ]
    )


def initialize_config(workspace_dir: Optional[Path] = None, force: bool = False) -> Path:
    root = resolve_config_root(workspace_dir)
    config_file = root / CONFIG_FILE_NAME
    if config_file.exists() and not force:
        raise ConfigError("config already exists: {0}".format(config_file), reason="exists")
    root.mkdir(parents=True, exist_ok=True)
    config_file.write_text(render_default_config(), encoding="utf-8")
    return config_file
