"""Core typed contracts shared by stores, protocol parsing, and the session."""

from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Dict, Optional

ELEMENT_TYPE_TASKLIST = "tasklist"
ELEMENT_TYPE_AVATAR = "avatar"

# Steps, elements and actions travel as JSON objects and keep every field the
# backend sends; only "id" (and for elements "type") is interpreted here.
Record = Dict[str, Any]

ElementUrlResolver = Callable[[str, str], str]
StateEventSink = Callable[[str, Dict[str, Any]], None]


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    return "{0}_{1}".format(prefix, uuid.uuid4().hex)


def record_id(record: Any) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    value = record.get("id")
    if value is None:
        return None
    return str(value)
