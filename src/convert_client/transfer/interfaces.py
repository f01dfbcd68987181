from dataclasses import dataclass, field
from typing import Any, BinaryIO, Mapping, Protocol

import requests


class HttpSession(Protocol):
    """The slice of ``requests.Session`` the client relies on."""

    def post(self, url: str, data: Any = None, json: Any = None, **kwargs: Any) -> requests.Response:
        ...

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        ...


@dataclass
class UploadRequest:
    """One streamed upload: lives for the duration of a single call."""

    filename: str
    stream: BinaryIO
    output_format: str
    options: Mapping[str, str] = field(default_factory=dict)
    wait: bool = False
