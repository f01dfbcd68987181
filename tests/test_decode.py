from __future__ import annotations

import pytest

from conftest import STATUS_BODY, make_response
from convert_client import DecodingError, RemoteError, UnexpectedStatusError
from convert_client.models import CreateProcessResponse
from convert_client.transfer import decode_model, decode_status, raise_for_status


def test_status_envelope_decoded():
    status = decode_status(make_response(200, STATUS_BODY))
    assert status.id == "abc123"
    assert status.percent == 100
    assert status.step == "finished"
    assert status.finished
    assert status.start_time == 1500000000
    assert status.end_time == 1500000030
    assert status.input.ext == "pdf"
    assert status.output.ext == "zip"
    assert status.output.files == ["doc-1.png", "doc-2.png"]
    assert status.converter.format == "png"


def test_missing_required_fields_is_decoding_error():
    with pytest.raises(DecodingError):
        decode_status(make_response(200, {"id": "abc123"}))


def test_wrong_type_is_decoding_error():
    body = dict(STATUS_BODY, percent="most of it")
    with pytest.raises(DecodingError):
        decode_status(make_response(200, body))


def test_non_json_200_is_decoding_error():
    with pytest.raises(DecodingError):
        decode_status(make_response(200, "<html>ok</html>"))


def test_error_envelope_becomes_remote_error():
    response = make_response(400, {"error": "This conversion type is not supported!", "code": 400})
    with pytest.raises(RemoteError) as exc_info:
        decode_status(response)
    assert exc_info.value.code == 400
    assert exc_info.value.message == "This conversion type is not supported!"
    assert str(exc_info.value) == "[400] This conversion type is not supported!"


def test_remote_code_taken_from_body_not_status():
    response = make_response(500, {"error": "Conversion failed", "code": 422})
    with pytest.raises(RemoteError) as exc_info:
        raise_for_status(response)
    assert exc_info.value.code == 422


@pytest.mark.parametrize("body", ["<html>Bad Gateway</html>", b"", {"message": "no code"}, [1, 2]])
def test_unparseable_error_body_is_unexpected_status(body):
    with pytest.raises(UnexpectedStatusError) as exc_info:
        decode_status(make_response(502, body))
    assert exc_info.value.expected == 200
    assert exc_info.value.actual == 502
    assert str(exc_info.value) == "invalid status code; expected 200 but got 502"


def test_raise_for_status_passes_200():
    raise_for_status(make_response(200, b"binary payload"))


def test_decode_model_generic():
    created = decode_model(
        make_response(200, {"url": "//host/process/x", "id": "x", "maxsize": 5}),
        CreateProcessResponse,
    )
    assert created.id == "x"
    assert created.max_size == 5
