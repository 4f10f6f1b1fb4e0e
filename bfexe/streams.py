"""
Byte sinks and sources used by the '.' and ',' instructions.

The engine only sees the ByteSink / ByteSource interfaces, so in-memory
buffers, standard streams and files are interchangeable. Stream errors
(OSError, or ValueError from a closed file) propagate to the engine, which
reports them as IoFailure.
"""

import io
import sys
from abc import ABC, abstractmethod
from typing import Optional, Union


class ByteSink(ABC):
    """Append-only destination for output bytes."""

    @abstractmethod
    def write_byte(self, value: int) -> None:
        ...

    def flush(self) -> None:
        pass


class ByteSource(ABC):
    """Origin of input bytes."""

    @abstractmethod
    def read_byte(self) -> Optional[int]:
        """Return the next byte, or None at end of stream."""


class BufferSink(ByteSink):
    def __init__(self):
        self.buffer = bytearray()

    def write_byte(self, value: int) -> None:
        self.buffer.append(value)

    def getvalue(self) -> bytes:
        return bytes(self.buffer)


class StreamSink(ByteSink):
    """Writes to a file object. Text streams are written through their binary buffer."""

    def __init__(self, stream=None):
        if stream is None:
            stream = sys.stdout
        self.stream = getattr(stream, 'buffer', stream)
        self._text = _is_text(self.stream)

    def write_byte(self, value: int) -> None:
        if self._text:
            # no binary buffer (e.g. io.StringIO), map the byte to one code point
            self.stream.write(chr(value))
        else:
            self.stream.write(bytes((value,)))

    def flush(self) -> None:
        self.stream.flush()


class BufferSource(ByteSource):
    def __init__(self, data: Union[bytes, bytearray, str] = b''):
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.data = bytes(data)
        self.index = 0

    def read_byte(self) -> Optional[int]:
        if self.index >= len(self.data):
            return None
        value = self.data[self.index]
        self.index += 1
        return value

    @property
    def remaining(self) -> int:
        return len(self.data) - self.index


class StreamSource(ByteSource):
    """Reads one byte at a time from a file object (stdin by default)."""

    def __init__(self, stream=None):
        if stream is None:
            stream = sys.stdin
        self.stream = getattr(stream, 'buffer', stream)
        self._text = _is_text(self.stream)
        self._pending = b''

    def read_byte(self) -> Optional[int]:
        if not self._pending:
            chunk = self.stream.read(1)
            if not chunk:
                return None
            self._pending = chunk.encode('utf-8') if self._text else chunk
        value = self._pending[0]
        self._pending = self._pending[1:]
        return value


def _is_text(stream) -> bool:
    mode = getattr(stream, 'mode', None)
    if isinstance(mode, str):
        return 'b' not in mode
    # io.StringIO and friends have no mode; TextIOBase covers them
    return isinstance(stream, io.TextIOBase)


def as_sink(target=None) -> ByteSink:
    """Coerce None (stdout), a ByteSink or a writable file object into a ByteSink."""
    if isinstance(target, ByteSink):
        return target
    return StreamSink(target)


def as_source(origin=None) -> ByteSource:
    """Coerce None (stdin), a ByteSource, bytes/str data or a readable file object into a ByteSource."""
    if isinstance(origin, ByteSource):
        return origin
    if isinstance(origin, (bytes, bytearray, str)):
        return BufferSource(origin)
    return StreamSource(origin)
