"""Client configuration, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_API_URL = "https://api.cloudconvert.com"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class ClientSettings:
    """Tunables for the HTTP calls and the upload pipeline.

    ``read_timeout`` of ``None`` waits indefinitely for a response, which is
    what a ``wait=true`` upload needs for long conversions.
    """

    api_key: str = field(default="", repr=False)
    base_url: str = DEFAULT_API_URL
    pipe_buffer_size: int = 64 * 1024
    chunk_size: int = 32 * 1024
    connect_timeout: float = 10.0
    read_timeout: float | None = None
    poll_interval: float = 1.5

    @classmethod
    def from_env(cls) -> "ClientSettings":
        read_timeout = _env_float("CLOUDCONVERT_READ_TIMEOUT", 0.0)
        return cls(
            api_key=os.getenv("CLOUDCONVERT_KEY", ""),
            base_url=os.getenv("CLOUDCONVERT_API_URL", DEFAULT_API_URL).rstrip("/"),
            pipe_buffer_size=_env_int("CLOUDCONVERT_PIPE_BUFFER_KB", 64) * 1024,
            chunk_size=_env_int("CLOUDCONVERT_CHUNK_KB", 32) * 1024,
            connect_timeout=_env_float("CLOUDCONVERT_CONNECT_TIMEOUT", 10.0),
            read_timeout=read_timeout if read_timeout > 0 else None,
            poll_interval=_env_float("CLOUDCONVERT_POLL_INTERVAL", 1.5),
        )

    def timeout(self, remaining: float | None = None) -> tuple[float, float | None]:
        """Return a ``requests`` (connect, read) timeout, capped by *remaining*."""
        connect = self.connect_timeout
        read = self.read_timeout
        if remaining is not None:
            # urllib3 rejects non-positive timeouts
            remaining = max(remaining, 0.001)
            connect = min(connect, remaining)
            read = remaining if read is None else min(read, remaining)
        return connect, read
