"""Fixed-size ring buffer that exposes its free and used regions as views."""

from __future__ import annotations

from typing import List


class CircularBuffer:
    """A byte ring buffer of fixed capacity.

    :meth:`writing` returns writable views over the free space and
    :meth:`reading` views over the stored data; :meth:`write_finish` and
    :meth:`read_finish` commit how many bytes were actually transferred.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self._data = bytearray(max_size)
        self._rp = 0
        self._used = 0

    @property
    def max_size(self) -> int:
        """Capacity in bytes."""
        return len(self._data)

    @property
    def free(self) -> int:
        """Bytes that can still be written."""
        return len(self._data) - self._used

    def __len__(self) -> int:
        return self._used

    def reading(self) -> List[memoryview]:
        """Return up to two views covering the stored data, oldest first."""
        if self._used == 0:
            return []
        view = memoryview(self._data)
        upper = self.max_size - self._rp
        if self._used <= upper:
            return [view[self._rp:self._rp + self._used]]
        return [view[self._rp:], view[:self._used - upper]]

    def read_finish(self, size: int) -> None:
        """Discard ``size`` bytes from the front of the stored data."""
        if size < 0 or size > self._used:
            raise ValueError(f"cannot consume {size} of {self._used} bytes")
        self._rp = (self._rp + size) % self.max_size
        self._used -= size

    def writing(self) -> List[memoryview]:
        """Return up to two writable views covering the free space, in order."""
        if self._used == self.max_size:
            return []
        view = memoryview(self._data)
        wp = (self._rp + self._used) % self.max_size
        upper = self.max_size - wp
        space = self.max_size - self._used
        if space <= upper:
            return [view[wp:wp + space]]
        return [view[wp:], view[:space - upper]]

    def write_finish(self, size: int) -> None:
        """Mark ``size`` bytes written into the free space as stored."""
        if size < 0 or size > self.free:
            raise ValueError(f"cannot commit {size} bytes, {self.free} free")
        self._used += size