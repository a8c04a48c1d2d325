"""Non-blocking socket operations that yield while an operation would block.

Every call that could block takes an optional *yielder*: a callable that
receives a :class:`~taskio.fileio.YieldType` and returns a true value to
abandon the operation, which then raises
:class:`~taskio.fileio.YieldAborted`. Without a yielder, the calling thread
waits until the socket is ready.

Passing ``socket.MSG_WAITALL`` in *flags* keeps transferring until the whole
request is satisfied. If the peer closes, an error occurs or the yielder
abandons the call after some data has moved, the partial result is returned
instead of raising. Passing ``MSG_DONTWAIT`` makes a would-block condition
raise :class:`BlockingIOError` instead of yielding.
"""

from __future__ import annotations

import errno
import os
import select
import socket as _socket
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from .fileio import YieldAborted, Yielder, YieldType

__all__ = [
    "socket",
    "socketpair",
    "connect",
    "accept",
    "recv",
    "send",
    "recvfrom",
    "sendto",
    "recvmsg",
    "sendmsg",
    "recvmmsg",
    "sendmmsg",
]

_MSG_WAITALL = getattr(_socket, "MSG_WAITALL", 0)
_MSG_DONTWAIT = getattr(_socket, "MSG_DONTWAIT", 0)
_CONNECT_PENDING = frozenset({errno.EINPROGRESS, errno.EALREADY})

_T = TypeVar("_T")


def _pause(sock: _socket.socket, writable: bool, yielder: Optional[Yielder]) -> None:
    if yielder is None:
        if writable:
            select.select([], [sock], [])
        else:
            select.select([sock], [], [])
    elif yielder(YieldType.WAITIO):
        raise YieldAborted("operation abandoned by yielder")


def _call(
    sock: _socket.socket,
    writable: bool,
    flags: int,
    yielder: Optional[Yielder],
    attempt: Callable[[], _T],
) -> _T:
    """Repeat ``attempt`` until it no longer reports that it would block."""
    while True:
        try:
            return attempt()
        except BlockingIOError:
            if flags & _MSG_DONTWAIT:
                raise
            _pause(sock, writable, yielder)


def _bytes_view(buffer: Any) -> memoryview:
    return memoryview(buffer).cast("B")


def _advance(views: List[memoryview], count: int) -> List[memoryview]:
    """Drop ``count`` transferred bytes from the front of ``views``."""
    rest = list(views)
    while rest and count >= len(rest[0]):
        count -= len(rest[0])
        rest.pop(0)
    if rest and count:
        rest[0] = rest[0][count:]
    return rest


def socket(
    domain: int = _socket.AF_INET,
    type: int = _socket.SOCK_STREAM,
    protocol: int = 0,
) -> _socket.socket:
    """Create a non-blocking socket."""
    sock = _socket.socket(domain, type, protocol)
    try:
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


def socketpair(
    domain: Optional[int] = None,
    type: int = _socket.SOCK_STREAM,
    protocol: int = 0,
) -> Tuple[_socket.socket, _socket.socket]:
    """Create a connected pair of non-blocking sockets."""
    first, second = _socket.socketpair(domain, type, protocol)
    try:
        first.setblocking(False)
        second.setblocking(False)
    except OSError:
        first.close()
        second.close()
        raise
    return first, second


def connect(
    sock: _socket.socket, address: Any, yielder: Optional[Yielder] = None
) -> None:
    """Connect ``sock`` to ``address``, yielding while the connection is pending.

    A socket that is already connected counts as success.
    """
    while True:
        err = sock.connect_ex(address)
        if err in (0, errno.EISCONN):
            return
        if err not in _CONNECT_PENDING:
            raise OSError(err, os.strerror(err))
        _pause(sock, True, yielder)


def accept(
    sock: _socket.socket, yielder: Optional[Yielder] = None
) -> Tuple[_socket.socket, Any]:
    """Accept a connection; the new socket is non-blocking.

    Returns ``(connection, address)``.
    """
    conn, address = _call(sock, False, 0, yielder, sock.accept)
    try:
        conn.setblocking(False)
    except OSError:
        conn.close()
        raise
    return conn, address


def recv(
    sock: _socket.socket,
    length: int,
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> bytes:
    """Receive up to ``length`` bytes (exactly ``length`` with MSG_WAITALL)."""
    call_flags = flags & ~_MSG_WAITALL
    if not flags & _MSG_WAITALL:
        return _call(sock, False, flags, yielder, lambda: sock.recv(length, call_flags))

    chunks: List[bytes] = []
    received = 0
    while received < length:
        want = length - received
        try:
            data = _call(sock, False, flags, yielder, lambda: sock.recv(want, call_flags))
        except (YieldAborted, OSError):
            if received:
                break
            raise
        if not data:
            break
        chunks.append(data)
        received += len(data)
    return b"".join(chunks)


def send(
    sock: _socket.socket,
    data: Any,
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> int:
    """Send ``data``; return the number of bytes sent (all with MSG_WAITALL)."""
    call_flags = flags & ~_MSG_WAITALL
    view = _bytes_view(data)
    if not flags & _MSG_WAITALL:
        return _call(sock, True, flags, yielder, lambda: sock.send(view, call_flags))

    sent = 0
    while sent < len(view):
        rest = view[sent:]
        try:
            count = _call(sock, True, flags, yielder, lambda: sock.send(rest, call_flags))
        except (YieldAborted, OSError):
            if sent:
                break
            raise
        if count <= 0:
            break
        sent += count
    return sent


def recvfrom(
    sock: _socket.socket,
    length: int,
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> Tuple[bytes, Any]:
    """Receive up to ``length`` bytes; return ``(data, address)``."""
    call_flags = flags & ~_MSG_WAITALL
    if not flags & _MSG_WAITALL:
        return _call(
            sock, False, flags, yielder, lambda: sock.recvfrom(length, call_flags)
        )

    chunks: List[bytes] = []
    received = 0
    address: Any = None
    while received < length:
        want = length - received
        try:
            data, address = _call(
                sock, False, flags, yielder, lambda: sock.recvfrom(want, call_flags)
            )
        except (YieldAborted, OSError):
            if received:
                break
            raise
        if not data:
            break
        chunks.append(data)
        received += len(data)
    return b"".join(chunks), address


def sendto(
    sock: _socket.socket,
    data: Any,
    flags: int,
    address: Any,
    yielder: Optional[Yielder] = None,
) -> int:
    """Send ``data`` to ``address``; return the number of bytes sent."""
    call_flags = flags & ~_MSG_WAITALL
    view = _bytes_view(data)
    if not flags & _MSG_WAITALL:
        return _call(
            sock, True, flags, yielder, lambda: sock.sendto(view, call_flags, address)
        )

    sent = 0
    while sent < len(view):
        rest = view[sent:]
        try:
            count = _call(
                sock, True, flags, yielder, lambda: sock.sendto(rest, call_flags, address)
            )
        except (YieldAborted, OSError):
            if sent:
                break
            raise
        if count <= 0:
            break
        sent += count
    return sent


def recvmsg(
    sock: _socket.socket,
    buffers: Sequence[Any],
    ancbufsize: int = 0,
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> Tuple[int, List[Tuple[int, int, bytes]], int, Any]:
    """Scatter-receive into ``buffers``.

    Returns ``(nbytes, ancdata, msg_flags, address)`` as
    :meth:`socket.socket.recvmsg_into` does; with MSG_WAITALL the byte count
    is the total and the ancillary data of every call is collected.
    """
    call_flags = flags & ~_MSG_WAITALL
    views = [_bytes_view(buffer) for buffer in buffers]
    if not flags & _MSG_WAITALL:
        return _call(
            sock,
            False,
            flags,
            yielder,
            lambda: sock.recvmsg_into(views, ancbufsize, call_flags),
        )

    total = sum(len(view) for view in views)
    size = 0
    ancdata: List[Tuple[int, int, bytes]] = []
    msg_flags = 0
    address: Any = None
    while True:
        pending = views
        try:
            count, anc, msg_flags, address = _call(
                sock,
                False,
                flags,
                yielder,
                lambda: sock.recvmsg_into(pending, ancbufsize, call_flags),
            )
        except (YieldAborted, OSError):
            if size:
                break
            raise
        ancdata.extend(anc)
        if count <= 0:
            break
        size += count
        if size >= total:
            break
        views = _advance(views, count)
    return size, ancdata, msg_flags, address


def sendmsg(
    sock: _socket.socket,
    buffers: Sequence[Any],
    ancdata: Sequence[Tuple[int, int, Any]] = (),
    flags: int = 0,
    address: Any = None,
    yielder: Optional[Yielder] = None,
) -> int:
    """Gather-send ``buffers`` with optional ancillary data.

    With MSG_WAITALL the ancillary data goes out with the first transfer only.
    """
    call_flags = flags & ~_MSG_WAITALL
    views = [_bytes_view(buffer) for buffer in buffers]

    def send_once(pending: List[memoryview], anc: Sequence[Any]) -> int:
        if address is None:
            return sock.sendmsg(pending, anc, call_flags)
        return sock.sendmsg(pending, anc, call_flags, address)

    if not flags & _MSG_WAITALL:
        return _call(sock, True, flags, yielder, lambda: send_once(views, ancdata))

    total = sum(len(view) for view in views)
    anc = list(ancdata)
    sent = 0
    while True:
        pending, pending_anc = views, anc
        try:
            count = _call(
                sock, True, flags, yielder, lambda: send_once(pending, pending_anc)
            )
        except (YieldAborted, OSError):
            if sent:
                break
            raise
        if count <= 0:
            break
        anc = []
        sent += count
        if sent >= total:
            break
        views = _advance(views, count)
    return sent


def _batch(limit: int, step: Callable[[], _T]) -> List[_T]:
    """Run ``step`` up to ``limit`` times, stopping early once something failed.

    A failure before the first success propagates.
    """
    results: List[_T] = []
    while len(results) < limit:
        try:
            results.append(step())
        except OSError:
            if results:
                break
            raise
    return results


def recvmmsg(
    sock: _socket.socket,
    count: int,
    bufsize: int = 65535,
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> List[Tuple[bytes, Any]]:
    """Receive up to ``count`` messages as ``(data, address)`` pairs.

    Without MSG_WAITALL, returns what is available once at least one message
    has arrived; with it, waits for ``count`` messages.
    """
    call_flags = flags & ~_MSG_WAITALL

    def receive(limit: int) -> List[Tuple[bytes, Any]]:
        return _batch(limit, lambda: sock.recvfrom(bufsize, call_flags))

    if count <= 0:
        return []
    if not flags & _MSG_WAITALL:
        return _call(sock, False, flags, yielder, lambda: receive(count))

    messages: List[Tuple[bytes, Any]] = []
    while len(messages) < count:
        want = count - len(messages)
        try:
            batch = _call(sock, False, flags, yielder, lambda: receive(want))
        except (YieldAborted, OSError):
            if messages:
                break
            raise
        if not batch:
            break
        messages.extend(batch)
    return messages


def sendmmsg(
    sock: _socket.socket,
    messages: Sequence[Any],
    flags: int = 0,
    yielder: Optional[Yielder] = None,
) -> int:
    """Send several messages; return how many were sent.

    Each message is either bytes-like, sent to the connected peer, or a
    ``(data, address)`` tuple.
    """
    call_flags = flags & ~_MSG_WAITALL
    items = list(messages)

    def send_one(message: Any) -> int:
        if isinstance(message, tuple):
            data, address = message
            return sock.sendto(data, call_flags, address)
        return sock.send(message, call_flags)

    def transmit(pending: List[Any]) -> int:
        remaining = iter(pending)
        return len(_batch(len(pending), lambda: send_one(next(remaining))))

    if not items:
        return 0
    if not flags & _MSG_WAITALL:
        return _call(sock, True, flags, yielder, lambda: transmit(items))

    sent = 0
    while sent < len(items):
        pending = items[sent:]
        try:
            done = _call(sock, True, flags, yielder, lambda: transmit(pending))
        except (YieldAborted, OSError):
            if sent:
                break
            raise
        if done <= 0:
            break
        sent += done
    return sent