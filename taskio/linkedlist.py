"""Intrusive doubly linked list with constant-time append and removal."""

from __future__ import annotations

from typing import Any, Iterator, Optional


class ListNode:
    """A node that can be linked into at most one :class:`LinkedList`."""

    __slots__ = ("value", "prev", "next", "_owner")

    def __init__(self, value: Any = None) -> None:
        self.value = value
        self.prev: Optional[ListNode] = None
        self.next: Optional[ListNode] = None
        self._owner: Optional[LinkedList] = None

    @property
    def linked(self) -> bool:
        """True while the node belongs to a list."""
        return self._owner is not None

    def __repr__(self) -> str:
        return f"ListNode({self.value!r})"


class LinkedList:
    """A doubly linked list of :class:`ListNode` objects."""

    def __init__(self) -> None:
        self.head: Optional[ListNode] = None
        self.tail: Optional[ListNode] = None
        self._size = 0

    def add_tail(self, node: ListNode) -> ListNode:
        """Append ``node`` at the end of the list and return it."""
        if not isinstance(node, ListNode):
            raise TypeError("only ListNode objects can be linked")
        if node._owner is not None:
            raise ValueError("node is already linked into a list")

        node.prev = self.tail
        node.next = None
        if self.tail is not None:
            self.tail.next = node
        else:
            self.head = node
        self.tail = node
        node._owner = self
        self._size += 1
        return node

    def remove(self, node: ListNode) -> None:
        """Unlink ``node`` from the list."""
        if node._owner is not self:
            raise ValueError("node is not linked into this list")

        if node.prev is not None:
            node.prev.next = node.next
        else:
            self.head = node.next

        if node.next is not None:
            node.next.prev = node.prev
        else:
            self.tail = node.prev

        node.prev = None
        node.next = None
        node._owner = None
        self._size -= 1

    def __iter__(self) -> Iterator[ListNode]:
        node = self.head
        while node is not None:
            following = node.next
            yield node
            node = following

    def __len__(self) -> int:
        return self._size

    def __contains__(self, node: object) -> bool:
        return isinstance(node, ListNode) and node._owner is self

    def __repr__(self) -> str:
        return f"LinkedList([{', '.join(repr(n.value) for n in self)}])"