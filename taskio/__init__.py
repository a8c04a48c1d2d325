"""Non-blocking file, pipe and socket I/O with pluggable yielders, a linked list and a circular buffer."""

__version__ = "0.1.0"
__all__ = ["linkedlist", "circular", "pipes", "fileio", "netio"]