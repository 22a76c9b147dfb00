"""Exception hierarchy for chatlink."""

from __future__ import annotations

from typing import Any, Dict


class ChatlinkError(RuntimeError):
    """Base error carrying optional structured details."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self._details: Dict[str, Any] = {}
        for key, value in details.items():
            if value is None:
                continue
            self._details[str(key)] = value

    @property
    def details(self) -> Dict[str, Any]:
        return dict(self._details)


def error_summary(exc: BaseException) -> str:
    detail = exc.details if isinstance(exc, ChatlinkError) else {}
    segments = [str(exc) or exc.__class__.__name__]
    for key in ("event_name", "reason", "field"):
        value = detail.get(key)
        if value in ("", None):
            continue
        segments.append("{0}={1}".format(key, value))
    return " | ".join(segments)


class ProtocolError(ChatlinkError):
    """Raised when an inbound event payload does not match its catalog shape."""


class TransportError(ChatlinkError):
    """Raised when a transport cannot be opened."""


class ConfigError(ChatlinkError):
    """Raised when project configuration is invalid."""
