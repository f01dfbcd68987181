"""Client for the conversion service: job creation and the per-job handle."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import BinaryIO, Mapping
from urllib.parse import quote_plus, urljoin

import requests

from .config import DEFAULT_API_URL, ClientSettings
from .errors import ConvertError, TransportError
from .models import CreateProcessRequest, CreateProcessResponse, ProcessStatus
from .transfer import CancelToken, UploadRequest, decode_model, decode_status, raise_for_status, stream_upload
from .transfer.interfaces import HttpSession

log = logging.getLogger(__name__)


class Client:
    """Entry point: holds the API key, base URL and HTTP session."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        *,
        session: HttpSession | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session: HttpSession = session if session is not None else requests.Session()
        self.settings = settings or ClientSettings(api_key=api_key, base_url=self.base_url)

    @classmethod
    def from_env(cls, *, session: HttpSession | None = None) -> "Client":
        settings = ClientSettings.from_env()
        return cls(settings.api_key, settings.base_url, session=session, settings=settings)

    def __repr__(self) -> str:
        return f"Client(base_url={self.base_url!r})"

    def create_process(self, input_format: str, output_format: str) -> "Process":
        """Register a conversion job and return its handle."""
        payload = CreateProcessRequest(
            api_key=self.api_key,
            input_format=input_format,
            output_format=output_format,
        ).model_dump(by_alias=True)
        url = f"{self.base_url}/process"
        try:
            response = self.session.post(url, json=payload, timeout=self.settings.timeout())
        except requests.RequestException as exc:
            raise TransportError(f"create process failed: {exc}") from exc

        created = decode_model(response, CreateProcessResponse)
        # The service answers with a protocol-relative URL on a worker host.
        process_url = urljoin(self.base_url + "/", created.url)
        log.info("created process %s (%s -> %s) at %s", created.id, input_format, output_format, process_url)
        return Process(client=self, id=created.id, url=process_url)


@dataclass(frozen=True)
class Process:
    """Handle on one conversion job."""

    client: Client = field(repr=False)
    id: str
    url: str
    wait_for_completion: bool = False

    def wait(self, flag: bool = True) -> "Process":
        """Return a copy whose uploads ask the service to hold the response until done."""
        return replace(self, wait_for_completion=flag)

    def convert_stream(
        self,
        stream: BinaryIO,
        filename: str,
        output_format: str,
        converter_options: Mapping[str, str] | None = None,
        *,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> ProcessStatus:
        """Stream *stream* to the job as a multipart upload.

        The stream is read to exhaustion. ``timeout`` creates a deadline for
        the whole call when no ``cancel`` token is supplied.
        """
        request = UploadRequest(
            filename=filename,
            stream=stream,
            output_format=output_format,
            options=dict(converter_options or {}),
            wait=self.wait_for_completion,
        )
        token = cancel
        if token is None and timeout is not None:
            token = CancelToken(timeout)
        try:
            return stream_upload(
                self.client.session,
                self.url,
                request,
                settings=self.client.settings,
                cancel=token,
            )
        finally:
            if token is not None and cancel is None:
                token.close()

    def convert_file(
        self,
        path: str | Path,
        output_format: str,
        converter_options: Mapping[str, str] | None = None,
        *,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> ProcessStatus:
        path = Path(path)
        with path.open("rb") as fh:
            return self.convert_stream(fh, path.name, output_format, converter_options, cancel=cancel, timeout=timeout)

    def status(self, *, cancel: CancelToken | None = None) -> ProcessStatus:
        return decode_status(self._get(self.url, cancel=cancel))

    def poll(self, interval: float | None = None, *, cancel: CancelToken | None = None) -> ProcessStatus:
        """Check status until the job reaches ``finished`` or ``error``."""
        interval = self.client.settings.poll_interval if interval is None else interval
        token = cancel or CancelToken()
        while True:
            status = self.status(cancel=token)
            log.debug("process %s: step=%s percent=%s", self.id, status.step, status.percent)
            if status.finished:
                return status
            if token.wait(interval):
                token.raise_if_cancelled()

    def download(self, *, cancel: CancelToken | None = None) -> BinaryIO:
        """Stream the job's output (a single file, or an archive of several)."""
        return self._open(urljoin(self.url, f"/download/{self.id}"), cancel)

    def download_one(self, filename: str, *, cancel: CancelToken | None = None) -> BinaryIO:
        """Stream one named file out of a multi-file result."""
        return self._open(urljoin(self.url, f"/download/{self.id}/{quote_plus(filename)}"), cancel)

    def _get(self, url: str, *, stream: bool = False, cancel: CancelToken | None = None) -> requests.Response:
        remaining = None
        if cancel is not None:
            cancel.raise_if_cancelled()
            remaining = cancel.remaining()
        try:
            return self.client.session.get(url, stream=stream, timeout=self.client.settings.timeout(remaining))
        except requests.RequestException as exc:
            if cancel is not None and cancel.expired:
                cancel.expire()
                raise cancel.error from exc
            raise TransportError(f"GET {url} failed: {exc}") from exc

    def _open(self, url: str, cancel: CancelToken | None = None) -> BinaryIO:
        response = self._get(url, stream=True, cancel=cancel)
        try:
            raise_for_status(response)
        except ConvertError:
            response.close()
            raise
        response.raw.decode_content = True
        return response.raw
