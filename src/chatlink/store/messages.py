"""Ordered step/message store with streamed content assembly."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from chatlink.kernel.types import Record, record_id

OUTPUT_FIELD = "output"
INPUT_FIELD = "input"


def assemble_content(current: Any, fragment: str, is_sequence: bool) -> str:
    """Apply one streamed fragment to a content field.

    Sequence fragments carry the whole content so far and replace it;
    plain fragments are deltas and are appended.
    """
    if is_sequence:
        return fragment
    return "{0}{1}".format(current or "", fragment)


class StreamingContentAssembler:
    """Routes fragments to the displayed (output) or input-echo field."""

    def __init__(self, output_field: str = OUTPUT_FIELD, input_field: str = INPUT_FIELD) -> None:
        self.output_field = output_field
        self.input_field = input_field

    def target_field(self, is_input: bool) -> str:
        return self.input_field if is_input else self.output_field

    def apply(self, message: Record, fragment: str, is_sequence: bool, is_input: bool) -> Record:
        field_name = self.target_field(is_input)
        updated = dict(message)
        updated[field_name] = assemble_content(message.get(field_name), fragment, is_sequence)
        return updated


class MessageStore:
    """Messages in arrival order, addressed by id.

    Lookups that miss (update, delete, stream) are no-ops and return False.
    """

    def __init__(self, assembler: Optional[StreamingContentAssembler] = None) -> None:
        self._assembler = assembler or StreamingContentAssembler()
        self._messages: List[Record] = []

    def __len__(self) -> int:
        return len(self._messages)

    def items(self) -> List[Record]:
        return [dict(message) for message in self._messages]

    def ids(self) -> List[str]:
        return [str(record_id(message)) for message in self._messages]

    def get(self, message_id: str) -> Optional[Record]:
        index = self._index_of(message_id)
        if index is None:
            return None
        return dict(self._messages[index])

    def append(self, message: Record) -> bool:
        """Add a message, or replace the one already stored under its id.

        Returns True when the message was new.
        """
        message_id = record_id(message)
        index = self._index_of(message_id) if message_id is not None else None
        if index is not None:
            self._messages[index] = dict(message)
            return False
        self._messages.append(dict(message))
        return True

    def update_by_id(self, message_id: str, patch: Dict[str, Any]) -> bool:
        index = self._index_of(message_id)
        if index is None:
            return False
        merged = dict(self._messages[index])
        merged.update(patch)
        self._messages[index] = merged
        return True

    def delete_by_id(self, message_id: str) -> bool:
        index = self._index_of(message_id)
        if index is None:
            return False
        del self._messages[index]
        return True

    def stream_append(self, message_id: str, fragment: str, is_sequence: bool, is_input: bool) -> bool:
        index = self._index_of(message_id)
        if index is None:
            return False
        self._messages[index] = self._assembler.apply(
            self._messages[index],
            fragment,
            is_sequence=is_sequence,
            is_input=is_input,
        )
        return True

    def clear(self) -> None:
        self._messages = []

    def extend(self, messages: Iterable[Record]) -> None:
        for message in messages:
            self.append(message)

    def _index_of(self, message_id: str) -> Optional[int]:
        target = str(message_id)
        for index, message in enumerate(self._messages):
            if record_id(message) == target:
                return index
        return None
