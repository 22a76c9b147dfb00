"""Id-keyed ordered collections for elements, task lists, and actions."""

from __future__ import annotations

from typing import Iterable, List, Optional

from chatlink.kernel.types import Record, record_id


class UpsertCollection:
    """Ordered records keyed by id; updates keep position, inserts append."""

    def __init__(self, items: Optional[Iterable[Record]] = None) -> None:
        self._items: List[Record] = []
        if items is not None:
            self.replace_all(items)

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[Record]:
        return [dict(item) for item in self._items]

    def ids(self) -> List[str]:
        return [str(record_id(item)) for item in self._items]

    def get(self, item_id: str) -> Optional[Record]:
        for item in self._items:
            if record_id(item) == str(item_id):
                return dict(item)
        return None

    def upsert(self, item: Record) -> bool:
        """Insert or replace ``item``; returns True when it was an insert."""
        target = record_id(item)
        for index, existing in enumerate(self._items):
            if record_id(existing) == target:
                self._items[index] = dict(item)
                return False
        self._items.append(dict(item))
        return True

    def remove_by_id(self, item_id: str) -> bool:
        target = str(item_id)
        kept = [item for item in self._items if record_id(item) != target]
        if len(kept) == len(self._items):
            return False
        self._items = kept
        return True

    def replace_all(self, items: Iterable[Record]) -> None:
        self._items = []
        for item in items:
            self.upsert(item)

    def clear(self) -> None:
        self._items = []


class ActionCollection:
    """Actions in arrival order; duplicates allowed, removal takes the first match."""

    def __init__(self) -> None:
        self._actions: List[Record] = []

    def __len__(self) -> int:
        return len(self._actions)

    def items(self) -> List[Record]:
        return [dict(action) for action in self._actions]

    def ids(self) -> List[str]:
        return [str(record_id(action)) for action in self._actions]

    def append(self, action: Record) -> None:
        self._actions = self._actions + [dict(action)]

    def remove_first(self, action_id: str) -> bool:
        target = str(action_id)
        for index, action in enumerate(self._actions):
            if record_id(action) == target:
                self._actions = self._actions[:index] + self._actions[index + 1:]
                return True
        return False

    def clear(self) -> None:
        self._actions = []
