"""Response decoding shared by every call to the service.

A 200 response is parsed into the expected model. Anything else is read as
an error envelope; if that fails too, the status code mismatch itself is the
error.
"""

from __future__ import annotations

from typing import TypeVar

import requests
from pydantic import BaseModel, ValidationError

from ..errors import DecodingError, RemoteError, UnexpectedStatusError
from ..models import ErrorEnvelope, ProcessStatus

EXPECTED_STATUS = 200

M = TypeVar("M", bound=BaseModel)


def raise_for_status(response: requests.Response) -> None:
    if response.status_code == EXPECTED_STATUS:
        return
    try:
        envelope = ErrorEnvelope.model_validate_json(response.content)
    except (ValidationError, ValueError):
        raise UnexpectedStatusError(EXPECTED_STATUS, response.status_code) from None
    raise RemoteError(envelope.message, envelope.code)


def decode_model(response: requests.Response, model: type[M]) -> M:
    raise_for_status(response)
    try:
        return model.model_validate_json(response.content)
    except (ValidationError, ValueError) as exc:
        raise DecodingError(f"invalid {model.__name__} body: {exc}") from exc


def decode_status(response: requests.Response) -> ProcessStatus:
    return decode_model(response, ProcessStatus)
