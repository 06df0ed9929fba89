"""
Container state: accordion groups and array items.

An AccordionGroup holds the single open id shared by sibling collapsible
containers. ArrayState keeps stable ids for array items across inserts,
removals and moves, and enforces the array's item limits.
"""

import itertools
from typing import Any, Optional

from PyQt5.QtCore import QObject, pyqtSignal

from .context import ArrayItemContext, ContextResolver, FieldContext
from .logging import logger


class AccordionGroup(QObject):
    """
    Shared open/closed state of sibling collapsible containers.

    At most one member is open; opening one closes the rest because only
    the open id is stored.
    """

    openChanged = pyqtSignal(object)  # open id or None

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._open_id: Optional[str] = None
        self._members: list[str] = []

    @property
    def open_id(self) -> Optional[str]:
        return self._open_id

    @property
    def members(self) -> list[str]:
        return list(self._members)

    def register(self, accordion_id: str, default_open: bool = False) -> "AccordionHandle":
        """
        Join the group. A default-open member becomes the open one only if
        nothing is open yet.
        """
        if accordion_id not in self._members:
            self._members.append(accordion_id)
        if default_open and self._open_id is None:
            self.set_open_id(accordion_id)
        return AccordionHandle(accordion_id, self)

    def unregister(self, accordion_id: str):
        if accordion_id in self._members:
            self._members.remove(accordion_id)
        if self._open_id == accordion_id:
            self.set_open_id(None)

    def set_open_id(self, accordion_id: Optional[str]):
        if accordion_id == self._open_id:
            return
        self._open_id = accordion_id
        logger.debug(f"Accordion open id -> {accordion_id}")
        self.openChanged.emit(accordion_id)

    def is_open(self, accordion_id: str) -> bool:
        return self._open_id == accordion_id


class AccordionHandle:
    """
    One container's view of its open state.

    Without a group the handle keeps its own boolean, so registration
    works the same whether or not an enclosing group exists.
    """

    def __init__(self, accordion_id: str, group: Optional[AccordionGroup] = None, default_open: bool = False):
        self.id = accordion_id
        self.group = group
        self._open = default_open

    @classmethod
    def register(cls, accordion_id: str, default_open: bool, group: Optional[AccordionGroup] = None) -> "AccordionHandle":
        if group is None:
            return cls(accordion_id, None, default_open)
        return group.register(accordion_id, default_open)

    @property
    def is_open(self) -> bool:
        if self.group is None:
            return self._open
        return self.group.is_open(self.id)

    def set_open(self, open_: bool):
        if self.group is None:
            self._open = open_
        elif open_:
            self.group.set_open_id(self.id)
        elif self.group.is_open(self.id):
            self.group.set_open_id(None)

    def open(self):
        self.set_open(True)

    def close(self):
        self.set_open(False)

    def toggle(self):
        self.set_open(not self.is_open)

    def __repr__(self):
        return f"AccordionHandle({self.id!r}, open={self.is_open})"


class ArrayState:
    """
    Item bookkeeping for one array field.

    Operations take the current item list and return a new one; the ids
    list is kept in step so an item keeps its id when others move.
    """

    _counter = itertools.count(1)

    def __init__(
        self,
        path: str,
        min_items: int = 0,
        max_items: Optional[int] = None,
        collapsible_items: bool = False,
    ):
        self.path = path
        self.min_items = min_items
        self.max_items = max_items
        self.ids: list[str] = []
        self.accordion = AccordionGroup() if collapsible_items else None

    def _new_id(self) -> str:
        return f"{self.path}#{next(self._counter)}"

    def sync(self, count: int):
        """Match the ids list to an item count changed from outside."""
        while len(self.ids) < count:
            self.ids.append(self._new_id())
        del self.ids[count:]

    def item_id(self, index: int) -> str:
        return self.ids[index]

    def can_add(self, count: int) -> bool:
        return self.max_items is None or count < self.max_items

    def can_remove(self, count: int) -> bool:
        return count > self.min_items

    def add(self, items: list, value: Any = None, index: Optional[int] = None) -> list:
        """Insert an item (at the end by default), unless at max_items."""
        self.sync(len(items))
        if not self.can_add(len(items)):
            logger.warning(f"Array '{self.path}' is at its maximum of {self.max_items} item(s)")
            return list(items)

        index = len(items) if index is None else index
        if not 0 <= index <= len(items):
            raise IndexError(f"Insert index {index} out of range for '{self.path}'")

        new_id = self._new_id()
        result = list(items)
        result.insert(index, value if value is not None else {})
        self.ids.insert(index, new_id)
        if self.accordion is not None:
            self.accordion.register(new_id)
            self.accordion.set_open_id(new_id)
        return result

    def remove(self, items: list, index: int) -> list:
        """Remove the item at index, unless at min_items."""
        self.sync(len(items))
        if not 0 <= index < len(items):
            raise IndexError(f"Item index {index} out of range for '{self.path}'")
        if not self.can_remove(len(items)):
            logger.warning(f"Array '{self.path}' needs at least {self.min_items} item(s)")
            return list(items)

        result = list(items)
        del result[index]
        removed = self.ids.pop(index)
        if self.accordion is not None:
            self.accordion.unregister(removed)
        return result

    def move(self, items: list, source: int, target: int) -> list:
        self.sync(len(items))
        if not (0 <= source < len(items) and 0 <= target < len(items)):
            raise IndexError(f"Cannot move item {source} to {target} in '{self.path}'")

        result = list(items)
        result.insert(target, result.pop(source))
        self.ids.insert(target, self.ids.pop(source))
        return result

    def item_handle(self, index: int) -> AccordionHandle:
        """Open/closed handle of an item; items of non-collapsible arrays stay open."""
        item_id = self.item_id(index)
        if self.accordion is None:
            return AccordionHandle(item_id, None, default_open=True)
        return self.accordion.register(item_id)

    def item_context(self, resolver: ContextResolver, index: int, enclosing: FieldContext) -> ArrayItemContext:
        return resolver.item_context(self.path, index, enclosing)
