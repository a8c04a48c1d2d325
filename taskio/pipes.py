"""Creation of non-blocking pipes."""

from __future__ import annotations

import os
from typing import Tuple


def pipe() -> Tuple[int, int]:
    """Create a pipe whose both ends are non-blocking.

    Returns ``(read_fd, write_fd)``. Raises :class:`OSError` on failure, in
    which case no descriptor is left open.
    """
    read_fd, write_fd = os.pipe()
    try:
        os.set_blocking(read_fd, False)
        os.set_blocking(write_fd, False)
    except OSError:
        os.close(read_fd)
        os.close(write_fd)
        raise
    return read_fd, write_fd