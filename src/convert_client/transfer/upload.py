"""Streaming upload: encoder thread, HTTP transmitter and the join between them.

The encoder writes the multipart body into a :class:`PipeBridge` on one
thread while a second posts the pipe's read end as the request body; the
calling thread joins both and can give up on either when cancelled. Each
outcome travels back through a ``Future``. An encoder failure always wins
over whatever the HTTP side observed, since a truncated body can still be
answered with a 200.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any, Callable, Optional, TypeVar

import requests

from ..config import ClientSettings
from ..errors import TransportError
from ..models import ProcessStatus
from .cancel import CancelToken
from .decode import decode_status
from .interfaces import HttpSession, UploadRequest
from .multipart import MultipartEncoder, encode_upload
from .pipe import PipeBridge, PipeReader, PipeWriter

log = logging.getLogger(__name__)

_JOIN_POLL = 0.1

T = TypeVar("T")


def _start(name: str, fn: Callable[..., T], *args: Any) -> "Future[T]":
    """Run *fn* on a daemon thread; its result or exception lands in the future."""
    future: "Future[T]" = Future()

    def run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn(*args))
        except BaseException as exc:
            future.set_exception(exc)

    threading.Thread(target=run, name=name, daemon=True).start()
    return future


def _run_encoder(encoder: MultipartEncoder, writer: PipeWriter, request: UploadRequest) -> None:
    try:
        encode_upload(encoder, request)
    except BaseException as exc:
        writer.close_with_error(exc)
        raise
    writer.close()


def transmit(
    session: HttpSession,
    url: str,
    body: PipeReader,
    content_type: str,
    settings: ClientSettings,
    cancel: CancelToken,
) -> requests.Response:
    """POST *body* to *url* and return once the response headers are in."""
    cancel.raise_if_cancelled()
    try:
        return session.post(
            url,
            data=body,
            headers={"Content-Type": content_type},
            timeout=settings.timeout(cancel.remaining()),
        )
    except requests.RequestException as exc:
        raise TransportError(f"upload to {url} failed: {exc}") from exc


def _await_outcome(outcome: "Future[None]", cancel: CancelToken) -> Optional[BaseException]:
    while True:
        try:
            return outcome.exception(timeout=_JOIN_POLL)
        except FuturesTimeout:
            if cancel.cancelled:
                # encoder is stuck inside the caller's stream; leave it behind
                return cancel.error


def _close_late_response(sending: "Future[requests.Response]") -> None:
    if not sending.cancelled() and sending.exception() is None:
        sending.result().close()


def _await_response(sending: "Future[requests.Response]", cancel: CancelToken) -> requests.Response:
    while True:
        try:
            return sending.result(timeout=_JOIN_POLL)
        except FuturesTimeout:
            if cancel.expired:
                cancel.expire()
            if cancel.cancelled:
                # the request thread finishes on its own; drop whatever it gets
                sending.add_done_callback(_close_late_response)
                cancel.raise_if_cancelled()


def _raise_encoder_error(outcome: "Future[None]", cancel: CancelToken, request: UploadRequest) -> None:
    encode_error = _await_outcome(outcome, cancel)
    if encode_error is not None:
        log.warning("upload of %s failed while encoding: %r", request.filename, encode_error)
        raise encode_error


def stream_upload(
    session: HttpSession,
    url: str,
    request: UploadRequest,
    *,
    settings: ClientSettings,
    cancel: CancelToken | None = None,
) -> ProcessStatus:
    cancel = cancel or CancelToken()
    pipe = PipeBridge(settings.pipe_buffer_size)
    encoder = MultipartEncoder(pipe.writer, chunk_size=settings.chunk_size)
    unregister = cancel.on_cancel(pipe.abort)

    log.info("uploading %s to %s (output=%s wait=%s)", request.filename, url, request.output_format, request.wait)
    t0 = time.time()

    outcome = _start("multipart-encoder", _run_encoder, encoder, pipe.writer, request)
    sending = _start("upload-request", transmit, session, url, pipe.reader, encoder.content_type, settings, cancel)

    try:
        try:
            response = _await_response(sending, cancel)
        except Exception as exc:
            pipe.reader.close()
            _raise_encoder_error(outcome, cancel, request)
            if cancel.expired:
                cancel.expire()
            log.warning("upload of %s failed: %s", request.filename, exc)
            if cancel.error is not None and exc is not cancel.error:
                raise cancel.error from exc
            raise
        pipe.reader.close()
        _raise_encoder_error(outcome, cancel, request)
        cancel.raise_if_cancelled()
    finally:
        unregister()

    log.info(
        "upload of %s done: %s bytes in %.2fs (HTTP %s, pipe high water %s)",
        request.filename,
        encoder.bytes_copied,
        time.time() - t0,
        response.status_code,
        pipe.high_water,
    )
    return decode_status(response)
