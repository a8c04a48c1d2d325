import pytest

from taskio.circular import CircularBuffer


def _put(buf, data):
    written = 0
    for view in buf.writing():
        chunk = data[written:written + len(view)]
        view[:len(chunk)] = chunk
        written += len(chunk)
        if written == len(data):
            break
    buf.write_finish(written)
    return written


def _take(buf, count):
    out = b"".join(bytes(v) for v in buf.reading())[:count]
    buf.read_finish(len(out))
    return out


def test_new_buffer_is_empty():
    buf = CircularBuffer(16)
    assert len(buf) == 0
    assert buf.max_size == 16
    assert buf.reading() == []
    views = buf.writing()
    assert sum(len(v) for v in views) == 16


def test_invalid_size():
    with pytest.raises(ValueError):
        CircularBuffer(0)


def test_round_trip():
    buf = CircularBuffer(16)
    assert _put(buf, b"hello") == 5
    assert len(buf) == 5
    assert _take(buf, 5) == b"hello"
    assert len(buf) == 0


def test_full_buffer_has_no_writing_views():
    buf = CircularBuffer(8)
    assert _put(buf, b"abcdefghij") == 8
    assert buf.writing() == []
    assert buf.free == 0
    assert b"".join(bytes(v) for v in buf.reading()) == b"abcdefgh"


def test_wraparound_splits_views():
    buf = CircularBuffer(8)
    _put(buf, b"abcdef")
    assert _take(buf, 4) == b"abcd"
    free_views = buf.writing()
    assert len(free_views) == 2
    assert sum(len(v) for v in free_views) == buf.free
    _put(buf, b"123456")
    read_views = buf.reading()
    assert len(read_views) == 2
    assert b"".join(bytes(v) for v in read_views) == b"ef123456"


def test_partial_reads_preserve_order():
    buf = CircularBuffer(5)
    stream = b"the quick brown fox"
    received = b""
    pos = 0
    while len(received) < len(stream):
        pos += _put(buf, stream[pos:pos + 3])
        received += _take(buf, 2)
        assert len(buf) + buf.free == buf.max_size
    assert received == stream


def test_read_finish_too_much():
    buf = CircularBuffer(4)
    _put(buf, b"ab")
    with pytest.raises(ValueError):
        buf.read_finish(3)


def test_write_finish_too_much():
    buf = CircularBuffer(4)
    with pytest.raises(ValueError):
        buf.write_finish(5)


def test_negative_sizes_rejected():
    buf = CircularBuffer(4)
    with pytest.raises(ValueError):
        buf.write_finish(-1)
    with pytest.raises(ValueError):
        buf.read_finish(-1)