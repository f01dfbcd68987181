"""Error taxonomy shared by the upload pipeline and the request helpers."""


class ConvertError(Exception):
    """Base class for every error raised by this package."""


class EncodingError(ConvertError):
    """The multipart body could not be produced."""


class ClosedPipeError(ConvertError):
    """Write attempted on a pipe whose write end is already closed."""


class TransportError(ConvertError):
    """Request construction or network failure while talking to the service."""


class DecodingError(ConvertError):
    """A 200 response whose body is not the expected envelope."""


class RemoteError(ConvertError):
    """Error envelope returned by the service on a non-200 response."""

    def __init__(self, message: str, code: int) -> None:
        super().__init__(message, code)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class UnexpectedStatusError(ConvertError):
    """Non-200 response whose body is not an error envelope."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(expected, actual)
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return f"invalid status code; expected {self.expected} but got {self.actual}"


class UploadCancelled(ConvertError):
    """The caller cancelled the operation."""


class UploadTimeout(UploadCancelled):
    """The operation's deadline expired."""
