"""Non-blocking file descriptor I/O that yields while an operation would block.

Every blocking-prone call takes an optional *yielder*: a callable that gets a
:class:`YieldType` and returns a true value to abandon the operation. Without
a yielder, the calling thread waits until the descriptor is ready.
"""

from __future__ import annotations

import enum
import os
import select
import socket
from typing import Callable, List, Optional, Sequence

from .circular import CircularBuffer

__all__ = [
    "YieldType",
    "YieldAborted",
    "Yielder",
    "open_file",
    "create_file",
    "open_file_at",
    "dup",
    "dup2",
    "read",
    "readv",
    "write",
    "writev",
    "splice",
]


class YieldType(enum.IntEnum):
    """Why an operation gives up control."""

    YIELD = 1
    WAITIO = 2


class YieldAborted(Exception):
    """Raised when a yielder asks for a pending operation to be abandoned."""


Yielder = Callable[[YieldType], object]


def _wait(fd: int, writable: bool) -> None:
    if writable:
        select.select([], [fd], [])
    else:
        select.select([fd], [], [])


def _yield_or_wait(fd: int, writable: bool, yielder: Optional[Yielder]) -> None:
    if yielder is None:
        _wait(fd, writable)
    elif yielder(YieldType.WAITIO):
        raise YieldAborted("operation abandoned by yielder")


def _make_nonblocking(fd: int) -> int:
    try:
        os.set_blocking(fd, False)
    except OSError:
        os.close(fd)
        raise
    return fd


def open_file(pathname, flags: int, mode: int = 0o777) -> int:
    """Open ``pathname`` in non-blocking mode and return the descriptor."""
    return os.open(pathname, flags | os.O_NONBLOCK, mode)


def create_file(pathname, mode: int = 0o666) -> int:
    """Create or truncate ``pathname`` for writing, non-blocking."""
    return open_file(pathname, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, mode)


def open_file_at(dirfd: int, pathname, flags: int, mode: int = 0o777) -> int:
    """Open ``pathname`` relative to the directory ``dirfd``, non-blocking."""
    return os.open(pathname, flags | os.O_NONBLOCK, mode, dir_fd=dirfd)


def dup(oldfd: int) -> int:
    """Duplicate ``oldfd`` onto the lowest free descriptor, non-blocking."""
    return _make_nonblocking(os.dup(oldfd))


def dup2(oldfd: int, newfd: int) -> int:
    """Duplicate ``oldfd`` onto ``newfd``, closing ``newfd`` first if open."""
    return _make_nonblocking(os.dup2(oldfd, newfd))


def read(fd: int, count: int, yielder: Optional[Yielder] = None) -> bytes:
    """Read up to ``count`` bytes, yielding while no data is available."""
    while True:
        try:
            return os.read(fd, count)
        except BlockingIOError:
            _yield_or_wait(fd, False, yielder)


def readv(fd: int, buffers: Sequence, yielder: Optional[Yielder] = None) -> int:
    """Scatter-read into ``buffers``; return the number of bytes read."""
    while True:
        try:
            return os.readv(fd, buffers)
        except BlockingIOError:
            _yield_or_wait(fd, False, yielder)


def write(fd: int, data, yielder: Optional[Yielder] = None) -> int:
    """Write ``data``; return the number of bytes written."""
    while True:
        try:
            return os.write(fd, data)
        except BlockingIOError:
            _yield_or_wait(fd, True, yielder)


def writev(fd: int, buffers: Sequence, yielder: Optional[Yielder] = None) -> int:
    """Gather-write ``buffers``; return the number of bytes written."""
    while True:
        try:
            return os.writev(fd, buffers)
        except BlockingIOError:
            _yield_or_wait(fd, True, yielder)


def _shutdown_write(fd: int) -> None:
    try:
        sock = socket.socket(fileno=fd)
    except OSError:
        return
    try:
        sock.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    finally:
        sock.detach()


class _Splicer:
    """One direction of a splice: input descriptor to output descriptor."""

    def __init__(self, fd_in: int, fd_out: int, buf_size: int) -> None:
        self.fd_in = fd_in
        self.fd_out = fd_out
        self.buffer = CircularBuffer(buf_size)

    def step(self) -> int:
        """Move what can be moved: 1 on progress, 0 if blocked, -1 when done."""
        result = 1

        space = self.buffer.writing()
        if space:
            try:
                count = os.readv(self.fd_in, space)
            except BlockingIOError:
                result = 0
            except OSError:
                result = -1
            else:
                if count > 0:
                    self.buffer.write_finish(count)
                else:
                    result = -1

        pending = self.buffer.reading()
        if pending:
            try:
                count = os.writev(self.fd_out, pending)
            except BlockingIOError:
                result = 0
            except OSError:
                result = -1
            else:
                if count > 0:
                    result = 1
                    self.buffer.read_finish(count)
                else:
                    result = -1
        elif result < 0:
            _shutdown_write(self.fd_out)

        return result


def splice(
    fd_a_i: int,
    fd_a_o: int,
    fd_b_i: int,
    fd_b_o: int,
    buf_size: int = 8192,
    yielder: Optional[Yielder] = None,
) -> None:
    """Move data both ways, ``a_i -> b_o`` and ``b_i -> a_o``.

    Runs until both directions have ended (end of file or error) or the
    yielder returns a true value.
    """
    forward = _Splicer(fd_a_i, fd_b_o, buf_size)
    backward = _Splicer(fd_b_i, fd_a_o, buf_size)
    res_f = 1
    res_b = 1

    def wait_default(kind: YieldType) -> bool:
        if kind is YieldType.WAITIO:
            readers: List[int] = []
            writers: List[int] = []
            for res, splicer in ((res_f, forward), (res_b, backward)):
                if res < 0:
                    continue
                if splicer.buffer.free:
                    readers.append(splicer.fd_in)
                if len(splicer.buffer):
                    writers.append(splicer.fd_out)
            if readers or writers:
                select.select(readers, writers, [])
        return False

    step_yielder = yielder if yielder is not None else wait_default

    while True:
        if res_f >= 0:
            res_f = forward.step()
        if res_b >= 0:
            res_b = backward.step()

        if res_f > 0 or res_b > 0:
            kind = YieldType.YIELD
        elif (res_f & res_b) == 0:
            kind = YieldType.WAITIO
        else:
            break

        if step_yielder(kind):
            break