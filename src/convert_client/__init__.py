"""
Streaming client for a remote file-conversion service.

Create a job with :meth:`Client.create_process`, stream a file to it with
:meth:`Process.convert_stream`, then wait, poll or download the result.
"""

from .client import Client, Process
from .config import DEFAULT_API_URL, ClientSettings
from .errors import (
    ClosedPipeError,
    ConvertError,
    DecodingError,
    EncodingError,
    RemoteError,
    TransportError,
    UnexpectedStatusError,
    UploadCancelled,
    UploadTimeout,
)
from .models import ErrorEnvelope, ProcessStatus
from .transfer import CancelToken

__all__ = [
    "__version__",
    "Client",
    "Process",
    "ClientSettings",
    "DEFAULT_API_URL",
    "CancelToken",
    "ProcessStatus",
    "ErrorEnvelope",
    "ConvertError",
    "EncodingError",
    "ClosedPipeError",
    "TransportError",
    "RemoteError",
    "UnexpectedStatusError",
    "DecodingError",
    "UploadCancelled",
    "UploadTimeout",
]

__version__ = "0.1.0"
