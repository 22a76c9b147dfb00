"""Atomic rebuild of session collections from a resumed thread."""

from __future__ import annotations

from typing import List

from chatlink.kernel.types import ELEMENT_TYPE_TASKLIST, Record
from chatlink.protocol.events import Thread
from chatlink.session.state import SessionState


class ThreadResumeReconciler:
    """Replaces messages, elements, and task lists with a thread snapshot.

    Every element that is not a task list goes to the element collection,
    avatars included. Live ``element`` events drop avatars instead.
    """

    def __init__(self, state: SessionState) -> None:
        self._state = state

    def resume(self, thread: Thread) -> None:
        tasklists: List[Record] = []
        elements: List[Record] = []
        for element in thread.elements:
            if element.get("type") == ELEMENT_TYPE_TASKLIST:
                tasklists.append(element)
            else:
                elements.append(element)

        with self._state.lock:
            self._state.messages.clear()
            self._state.messages.extend(thread.steps)
            if thread.chat_profile:
                self._state.chat_profile = thread.chat_profile
            self._state.tasklists.replace_all(tasklists)
            self._state.elements.replace_all(elements)
