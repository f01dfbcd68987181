"""Incremental multipart/form-data writer for the upload body."""

from __future__ import annotations

import logging
from typing import BinaryIO, Protocol

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary

from ..errors import EncodingError
from .interfaces import UploadRequest

log = logging.getLogger(__name__)

OPTION_PREFIX = "converteroptions"
FILE_CONTENT_TYPE = "application/octet-stream"


class ByteSink(Protocol):
    def write(self, data: bytes) -> int:
        ...


def option_field(key: str) -> str:
    return f"{OPTION_PREFIX}[{key}]"


class MultipartEncoder:
    """Writes form-data parts to a sink as they are produced.

    Parts are framed the way ``urllib3.encode_multipart_formdata`` frames
    them: ``--boundary CRLF headers data CRLF`` per part and a closing
    ``--boundary-- CRLF``.
    """

    def __init__(self, sink: ByteSink, boundary: str | None = None, chunk_size: int = 32 * 1024) -> None:
        self._sink = sink
        self.boundary = boundary or choose_boundary()
        self.chunk_size = chunk_size
        self.bytes_copied = 0
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _begin_part(self, name: str, filename: str | None = None, content_type: str | None = None) -> None:
        if self._closed:
            raise EncodingError("multipart writer already closed")
        part = RequestField(name=name, data=b"", filename=filename)
        part.make_multipart(content_type=content_type)
        try:
            head = f"--{self.boundary}\r\n".encode("latin-1") + part.render_headers().encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingError(f"cannot encode headers for part {name!r}: {exc}") from exc
        self._sink.write(head)

    def write_field(self, name: str, value: str) -> None:
        try:
            data = value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingError(f"cannot encode value of field {name!r}: {exc}") from exc
        self._begin_part(name)
        self._sink.write(data)
        self._sink.write(b"\r\n")

    def write_file(self, name: str, filename: str, stream: BinaryIO) -> int:
        """Copy *stream* to a file part and return the number of bytes copied.

        Exceptions raised by ``stream.read`` propagate unchanged.
        """
        self._begin_part(name, filename=filename, content_type=FILE_CONTENT_TYPE)
        copied = 0
        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                break
            if not isinstance(chunk, (bytes, bytearray, memoryview)):
                raise EncodingError(f"input stream returned {type(chunk).__name__}, expected bytes")
            self._sink.write(bytes(chunk))
            copied += len(chunk)
            self.bytes_copied = copied
        self._sink.write(b"\r\n")
        return copied

    def close(self) -> None:
        if self._closed:
            return
        self._sink.write(f"--{self.boundary}--\r\n".encode("latin-1"))
        self._closed = True


def encode_upload(encoder: MultipartEncoder, request: UploadRequest) -> None:
    """Write the upload form in the order the service expects."""
    encoder.write_field("input", "upload")
    encoder.write_field("outputformat", request.output_format)
    if request.wait:
        encoder.write_field("wait", "true")
    for key, value in request.options.items():
        encoder.write_field(option_field(key), value)
    copied = encoder.write_file("file", request.filename, request.stream)
    encoder.close()
    log.debug("encoded %s (%s bytes of file data)", request.filename, copied)
