"""In-process byte pipe joining the multipart encoder to the HTTP request body."""

from __future__ import annotations

import logging
import threading
from typing import Iterator

from ..errors import ClosedPipeError

log = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64 * 1024


class PipeBridge:
    """Bounded single-writer/single-reader byte buffer.

    Writes block once ``buffer_size`` unread bytes are queued and resume as
    the reader drains them. Reads block until bytes arrive or the writer
    closes the pipe.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self._capacity = buffer_size
        self._buf = bytearray()
        self._cond = threading.Condition()
        self._write_closed = False
        self._read_closed = False
        self._error: BaseException | None = None
        self._aborted: BaseException | None = None
        self.high_water = 0
        self.bytes_written = 0
        self.writer = PipeWriter(self)
        self.reader = PipeReader(self)

    @property
    def buffer_size(self) -> int:
        return self._capacity

    def abort(self, error: BaseException) -> None:
        """Fail both ends with *error*, waking any blocked call."""
        with self._cond:
            if self._aborted is None:
                self._aborted = error
            self._cond.notify_all()

    def _write(self, data: bytes) -> int:
        view = memoryview(data)
        with self._cond:
            while view:
                if self._aborted is not None:
                    raise self._aborted
                if self._write_closed:
                    raise ClosedPipeError("write on closed pipe")
                if self._read_closed:
                    # Consumer is gone; drop the rest so the producer can finish.
                    self.bytes_written += len(view)
                    return len(data)
                space = self._capacity - len(self._buf)
                if space <= 0:
                    self._cond.wait()
                    continue
                take = view[:space]
                self._buf += take
                self.bytes_written += len(take)
                view = view[len(take):]
                if len(self._buf) > self.high_water:
                    self.high_water = len(self._buf)
                self._cond.notify_all()
        return len(data)

    def _read(self, size: int) -> bytes:
        if size == 0:
            # nothing requested; does not wait and is not end-of-data
            return b""
        with self._cond:
            while True:
                if self._aborted is not None:
                    raise self._aborted
                if self._buf:
                    if size < 0 or size >= len(self._buf):
                        chunk = bytes(self._buf)
                        self._buf.clear()
                    else:
                        chunk = bytes(self._buf[:size])
                        del self._buf[:size]
                    self._cond.notify_all()
                    return chunk
                if self._error is not None:
                    raise self._error
                if self._write_closed or self._read_closed:
                    return b""
                self._cond.wait()

    def _close_writer(self, error: BaseException | None) -> None:
        with self._cond:
            if self._write_closed:
                return
            self._write_closed = True
            self._error = error
            self._cond.notify_all()
        log.debug(
            "pipe writer closed (written=%s high_water=%s error=%r)",
            self.bytes_written,
            self.high_water,
            error,
        )

    def _close_reader(self) -> None:
        with self._cond:
            if self._read_closed:
                return
            self._read_closed = True
            self._buf.clear()
            self._cond.notify_all()


class PipeWriter:
    """Write end, owned by the encoder."""

    def __init__(self, pipe: PipeBridge) -> None:
        self._pipe = pipe

    def write(self, data: bytes) -> int:
        return self._pipe._write(data)

    def close(self) -> None:
        self._pipe._close_writer(None)

    def close_with_error(self, error: BaseException) -> None:
        """Close so that pending and future reads raise *error*."""
        self._pipe._close_writer(error)


class PipeReader:
    """Read end, handed to ``requests`` as a streamed request body."""

    def __init__(self, pipe: PipeBridge, chunk_size: int | None = None) -> None:
        self._pipe = pipe
        self.chunk_size = chunk_size or pipe.buffer_size

    def read(self, size: int = -1) -> bytes:
        return self._pipe._read(size)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self._pipe._read(self.chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        self._pipe._close_reader()

    @property
    def closed(self) -> bool:
        return self._pipe._read_closed
