"""JSONL session debug log with size-based rotation and secret redaction."""

from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from chatlink.kernel.types import now_ms

LOG_FILE_NAME = "session.log.jsonl"
REDACTION_MODES = ("none", "default", "strict")

_MASK = "***REDACTED***"
# Exact "token" is left alone: stream_token payloads carry text fragments
# under that key. The access token travels as "accessToken"/"access_token".
_SECRET_KEY_RE = re.compile(
    r"(password|secret|access[_-]?token|auth[_-]?token|authorization|cookie|api[_-]?key|private[_-]?key)",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"(?i)\bbearer\s+([^\s,;]+)")
_ASSIGNMENT_RE = re.compile(
    r"(?i)\b(api[_-]?key|access[_-]?token|secret|authorization|cookie|private[_-]?key)\b\s*[:=]\s*([^\s,;]+)"
)
_SK_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9]{8,}\b")


def mask_text(text: str) -> str:
    if not text:
        return text
    masked = _BEARER_RE.sub("Bearer {0}".format(_MASK), text)
    masked = _ASSIGNMENT_RE.sub(lambda m: "{0}={1}".format(m.group(1), _MASK), masked)
    return _SK_KEY_RE.sub(_MASK, masked)


def mask_payload(value: Any, strict: bool = False) -> Any:
    """Return a copy of ``value`` with secret-looking keys and strings masked.

    ``strict`` masks every scalar leaf and keeps only the container shape.
    """
    if isinstance(value, dict):
        masked: Dict[str, Any] = {}
        for key, item in value.items():
            if _SECRET_KEY_RE.search(str(key)):
                masked[key] = _MASK
            else:
                masked[key] = mask_payload(item, strict=strict)
        return masked
    if isinstance(value, (list, tuple)):
        return [mask_payload(item, strict=strict) for item in value]
    if strict:
        return _MASK
    if isinstance(value, str):
        return mask_text(value)
    return value


class DebugLogWriter:
    """Best-effort writer; failures are counted, never raised."""

    def __init__(
        self,
        *,
        logs_dir: Path,
        enabled: bool,
        max_file_bytes: int = 10 * 1024 * 1024,
        max_files: int = 5,
        redaction: str = "default",
    ) -> None:
        self._logs_dir = Path(logs_dir)
        self._enabled = bool(enabled)
        self._max_file_bytes = max(1, int(max_file_bytes or 0))
        self._max_files = max(1, int(max_files or 0))
        mode = str(redaction or "default").strip().lower()
        self._redaction = mode if mode in REDACTION_MODES else "default"
        self._write_errors = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active_log_file(self) -> Path:
        return self._logs_dir / LOG_FILE_NAME

    def log_event(
        self,
        *,
        direction: str,
        event_name: str,
        session_id: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "info",
    ) -> None:
        self.write_entry(
            level=level,
            component="transport",
            kind="event.{0}".format(direction),
            session_id=session_id,
            event_name=event_name,
            message="{0}:{1}".format(direction, event_name),
            data=data,
        )

    def write_entry(
        self,
        *,
        level: str,
        component: str,
        kind: str,
        session_id: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        event_name: Optional[str] = None,
        ts_ms: Optional[int] = None,
    ) -> None:
        if not self._enabled:
            return

        entry: Dict[str, Any] = {
            "ts_ms": int(ts_ms if ts_ms is not None else now_ms()),
            "level": str(level or "info"),
            "component": str(component or "session"),
            "kind": str(kind or "diagnostic"),
            "session_id": str(session_id or ""),
            "event_name": str(event_name or ""),
            "message": str(message or ""),
            "data": dict(data or {}),
        }
        if self._redaction != "none":
            entry["message"] = mask_text(entry["message"])
            entry["data"] = mask_payload(entry["data"], strict=self._redaction == "strict")

        with self._lock:
            try:
                encoded = (
                    json.dumps(entry, ensure_ascii=True, separators=(",", ":"), default=str) + "\n"
                ).encode("utf-8")
                self._logs_dir.mkdir(parents=True, exist_ok=True)
                if self._current_size() + len(encoded) > self._max_file_bytes:
                    self._rotate()
                with self.active_log_file.open("ab") as handle:
                    handle.write(encoded)
            except Exception:
                self._write_errors += 1

    def status(self) -> Dict[str, Any]:
        with self._lock:
            rotated: List[str] = []
            total = 0
            if self._enabled:
                total = self._current_size()
                for index in range(1, self._max_files + 1):
                    path = self._rotated_path(index)
                    if path.exists():
                        rotated.append(str(path))
                        total += int(path.stat().st_size)
            return {
                "logs_enabled": self._enabled,
                "logs_dir": str(self._logs_dir),
                "logs_active_file": str(self.active_log_file),
                "logs_max_file_bytes": self._max_file_bytes,
                "logs_max_files": self._max_files,
                "logs_redaction": self._redaction,
                "logs_total_size_bytes": int(total),
                "logs_rotated_files": rotated,
                "logs_write_errors": int(self._write_errors),
            }

    def _current_size(self) -> int:
        active = self.active_log_file
        return int(active.stat().st_size) if active.exists() else 0

    def _rotate(self) -> None:
        self._rotated_path(self._max_files).unlink(missing_ok=True)
        for index in range(self._max_files - 1, 0, -1):
            source = self._rotated_path(index)
            if source.exists():
                source.replace(self._rotated_path(index + 1))
        if self.active_log_file.exists():
            self.active_log_file.replace(self._rotated_path(1))

    def _rotated_path(self, index: int) -> Path:
        return Path("{0}.{1}".format(self.active_log_file, index))
