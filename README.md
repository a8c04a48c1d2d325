# taskio

Building blocks for cooperative, non-blocking I/O on POSIX systems.

The I/O calls in `taskio` work on file descriptors and sockets that are in
non-blocking mode. If an operation would block, the call passes control to
a *yielder*. A yielder is a callable that receives a
`taskio.fileio.YieldType` (`YIELD` or `WAITIO`). If it returns a true value,
the operation is abandoned and `taskio.fileio.YieldAborted` is raised. If it
returns a false value, the operation is tried again. When no yielder is
given, the call waits with `select` until the descriptor is ready.

## Installing

```
pip install .
pip install ".[test]"   # adds pytest for running the tests
```

## Modules

### `taskio.linkedlist`

`LinkedList` is a doubly linked list of `ListNode` objects. Each node carries
a `value`.

- `add_tail(node)` appends a node and returns it. Appending a node that is
  already in a list raises `ValueError`. Appending anything that is not a
  `ListNode` raises `TypeError`.
- `remove(node)` unlinks a node. If the node is not in this list, it raises
  `ValueError`.
- The list supports iteration, `len()` and `in`. Iteration is safe while the
  current node is being removed.
- `ListNode.linked` tells whether a node is currently in a list.

### `taskio.circular`

`CircularBuffer(max_size)` is a fixed-capacity byte ring buffer.

- `writing()` returns up to two writable `memoryview`s covering the free
  space. `write_finish(n)` then commits `n` bytes as stored.
- `reading()` returns up to two views covering the stored data, oldest
  first. `read_finish(n)` then discards `n` bytes.
- `len(buf)` is the number of stored bytes. `buf.free` is the remaining space
  and `buf.max_size` is the capacity.
- Committing or consuming more bytes than possible raises `ValueError`.

### `taskio.pipes`

`pipe()` returns `(read_fd, write_fd)`, and both ends are non-blocking.

### `taskio.fileio`

- `open_file(pathname, flags, mode)`, `create_file(pathname, mode)` and
  `open_file_at(dirfd, pathname, flags, mode)` open files with `O_NONBLOCK`
  added.
- `dup(oldfd)` and `dup2(oldfd, newfd)` duplicate a descriptor and make the
  copy non-blocking.
- `read(fd, count, yielder)` returns bytes. `readv(fd, buffers, yielder)`,
  `write(fd, data, yielder)` and `writev(fd, buffers, yielder)` return byte
  counts.
- `splice(fd_a_i, fd_a_o, fd_b_i, fd_b_o, buf_size, yielder)` copies
  `a_i -> b_o` and `b_i -> a_o` through a circular buffer in each direction.
  When one direction's input ends and its buffer is empty, it shuts down
  writing on that direction's output socket. The call returns when both
  directions have ended, or when the yielder returns a true value.

### `taskio.netio`

- `socket(domain, type, protocol)` and `socketpair(domain, type, protocol)`
  create non-blocking sockets.
- `connect(sock, address, yielder)` connects the socket. A socket that is
  already connected counts as success.
- `accept(sock, yielder)` returns `(connection, address)`, and the new
  connection is non-blocking.
- The transfer calls are `recv`, `send`, `recvfrom` and `sendto`. There are
  also `recvmsg` and `sendmsg`, which work with buffers and ancillary data as
  `socket.recvmsg_into` and `socket.sendmsg` do. Finally there are `recvmmsg`
  and `sendmmsg`, which handle several datagrams per call by repeating
  `recvfrom`, `send` or `sendto`.
- With `socket.MSG_WAITALL` in `flags`, a call keeps going until the whole
  request is done. If the peer closes, an error occurs, or the yielder gives
  up after some data has moved, the call returns the partial result.
- With `MSG_DONTWAIT`, a call that would block raises `BlockingIOError`
  instead of yielding.

## Example

```python
from taskio import pipes, fileio

r, w = pipes.pipe()
fileio.write(w, b"hello")
print(fileio.read(r, 5))   # b'hello'
```

## Custom yielders

```python
from taskio import netio
from taskio.fileio import YieldType, YieldAborted

attempts = 0

def give_up_after_three(kind: YieldType) -> bool:
    global attempts
    attempts += 1
    return attempts > 3

a, b = netio.socketpair()
try:
    netio.recv(a, 16, 0, give_up_after_three)
except YieldAborted:
    print("nothing arrived")
```

## What taskio does not do

`taskio` has no scheduler, task objects, timers or event loop of its own. It
does not run name lookups. Switching to other work while an operation waits
is left to the yielder you supply. Without one, the calling thread simply
blocks in `select`.