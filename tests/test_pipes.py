import os

import pytest

from taskio.pipes import pipe


@pytest.fixture
def fds():
    read_fd, write_fd = pipe()
    yield read_fd, write_fd
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


def test_both_ends_non_blocking(fds):
    read_fd, write_fd = fds
    assert os.get_blocking(read_fd) is False
    assert os.get_blocking(write_fd) is False


def test_data_passes_through(fds):
    read_fd, write_fd = fds
    assert os.write(write_fd, b"ping") == 4
    assert os.read(read_fd, 16) == b"ping"


def test_empty_read_would_block(fds):
    read_fd, _ = fds
    with pytest.raises(BlockingIOError):
        os.read(read_fd, 1)


def test_full_write_would_block(fds):
    _, write_fd = fds
    chunk = b"x" * 65536
    with pytest.raises(BlockingIOError):
        for _ in range(1024):
            os.write(write_fd, chunk)


def test_closed_writer_gives_eof(fds):
    read_fd, write_fd = fds
    os.close(write_fd)
    assert os.read(read_fd, 1) == b""