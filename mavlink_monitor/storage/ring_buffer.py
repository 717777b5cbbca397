"""Fixed-capacity ring buffer for bounded message history."""

from typing import Generic, Iterator, List, Optional, TypeVar


T = TypeVar('T')


class InvalidArgumentError(ValueError):
    """Raised when a capacity or size argument is out of range."""


class RingBuffer(Generic[T]):
    """
    Circular FIFO over a fixed-size backing list.
    Pushing into a full buffer overwrites the oldest item.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise InvalidArgumentError("capacity must be > 0")
        self._capacity = capacity
        self._buf: List[Optional[T]] = [None] * capacity
        self._head = 0
        self._size = 0

    def push(self, item: T) -> None:
        """Append item, evicting the oldest when full."""
        self._buf[(self._head + self._size) % self._capacity] = item
        if self._size < self._capacity:
            self._size += 1
        else:
            self._head = (self._head + 1) % self._capacity

    def to_list(self) -> List[T]:
        """Get items oldest to newest as a new list."""
        return [
            self._buf[(self._head + i) % self._capacity]
            for i in range(self._size)
        ]

    def set_capacity(self, capacity: int) -> None:
        """Resize, keeping the most recent min(capacity, len) items."""
        if capacity <= 0:
            raise InvalidArgumentError("capacity must be > 0")
        items = self.to_list()[-capacity:]
        self._capacity = capacity
        self._buf = [None] * capacity
        self._head = 0
        self._size = 0
        for item in items:
            self.push(item)

    def clear(self) -> None:
        """Drop all items, keeping capacity."""
        self._buf = [None] * self._capacity
        self._head = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_list())
