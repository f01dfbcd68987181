"""Shared fixtures: a live fake service and scripted HTTP session doubles."""

from __future__ import annotations

import json
import logging
import socket
import sys
import threading
import time
from typing import Any, Callable

import pytest
import requests
import uvicorn

from convert_client import Client, ClientSettings

from fake_service import API_KEY, PROCESSES, app

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
log = logging.getLogger("conftest")

STATUS_BODY = {
    "id": "abc123",
    "url": "//host123.example.com/process/abc123",
    "percent": 100,
    "message": "Conversion finished!",
    "step": "finished",
    "starttime": 1500000000,
    "endtime": 1500000030,
    "expire": 1500086400,
    "group": "image",
    "input": {"type": "upload", "name": "doc.pdf", "filename": "doc.pdf", "ext": "pdf"},
    "output": {"size": 2048, "filename": "doc.zip", "ext": "zip", "files": ["doc-1.png", "doc-2.png"]},
    "converter": {"format": "png", "type": "imagemagick", "options": {}},
}


def make_response(status_code: int, body: Any = None, *, url: str = "") -> requests.Response:
    """Build a ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    if isinstance(body, (dict, list)):
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = body or b""
    response._content_consumed = True
    return response


class ScriptedSession:
    """Session double: ``post``/``get`` delegate to handlers and record calls."""

    def __init__(
        self,
        on_post: Callable[..., requests.Response] | None = None,
        on_get: Callable[..., requests.Response] | None = None,
    ) -> None:
        self.on_post = on_post
        self.on_get = on_get
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def post(self, url: str, data: Any = None, json: Any = None, **kwargs: Any) -> requests.Response:
        self.calls.append(("POST", url, {"json": json, **kwargs}))
        assert self.on_post is not None, "unexpected POST"
        return self.on_post(url, data=data, json=json, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append(("GET", url, kwargs))
        assert self.on_get is not None, "unexpected GET"
        return self.on_get(url, **kwargs)


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(api_key=API_KEY, pipe_buffer_size=4096, chunk_size=1024)


@pytest.fixture(scope="session")
def service_url():
    """Run the fake service on a free local port for the whole session."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, name="fake-service", daemon=True)
    thread.start()
    deadline = time.time() + 10
    while not server.started:
        if time.time() > deadline or not thread.is_alive():
            raise RuntimeError("fake service did not start")
        time.sleep(0.02)
    log.info("fake service listening on port %s", port)

    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=5)


@pytest.fixture
def live_client(service_url: str) -> Client:
    settings = ClientSettings(api_key=API_KEY, base_url=service_url, read_timeout=30.0)
    return Client(API_KEY, service_url, settings=settings)


@pytest.fixture
def processes() -> dict[str, dict[str, object]]:
    return PROCESSES


class HoldingServer:
    """Raw HTTP listener that reads a whole chunked upload, then withholds the answer."""

    def __init__(self, hold: float = 10.0) -> None:
        self.hold = hold
        self.received: list[int] = []
        self.release = threading.Event()
        self._stop = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen()
        self._listener.settimeout(0.1)
        self.url = "http://127.0.0.1:%d/process/abc123" % self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, name="holding-server", daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            data = b""
            while not data.endswith(b"\r\n0\r\n\r\n"):
                chunk = conn.recv(65536)
                if not chunk:
                    return
                data += chunk
            self.received.append(len(data))
            log.debug("holding server read %s bytes, holding response", len(data))
            self.release.wait(self.hold)
            body = json.dumps(STATUS_BODY).encode("utf-8")
            try:
                conn.sendall(
                    b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
                    b"Content-Length: %d\r\nConnection: close\r\n\r\n%s" % (len(body), body)
                )
            except OSError:
                pass

    def close(self) -> None:
        self.release.set()
        self._stop.set()
        self._listener.close()
        self._thread.join(timeout=2)


@pytest.fixture
def holding_server():
    server = HoldingServer()
    yield server
    server.close()
