"""Envelope Codec - request/response frames and command envelopes.

Tests cover:
    - Success envelopes become {id, result}; failures become {id, error}, never both
    - Legacy frames carrying "error": null decode as success
    - Error objects reduced to their message
    - Malformed frames raise FrameError
"""

import json

import pytest

from timebill.bridge.envelope import (
    FrameError, decode_request, decode_response, encode_request, encode_response,
    failure, response_to_envelope, success,
)


def test_request_frame():
    request = decode_request(encode_request("a1", "clients:list", []))
    assert (request.id, request.channel, request.args) == ("a1", "clients:list", [])


def test_integer_ids_accepted():
    assert decode_request('{"id": 7, "channel": "settings:getAll"}').id == 7


@pytest.mark.parametrize("text", [
    "not json",
    "[1, 2]",
    '{"id": "a"}',
    '{"id": "a", "channel": ""}',
    '{"id": "a", "channel": "x:y", "args": "oops"}',
])
def test_malformed_requests_rejected(text):
    with pytest.raises(FrameError):
        decode_request(text)


def test_success_response_has_no_error_key():
    frame = json.loads(encode_response("a1", success({"id": 3})))
    assert frame == {"id": "a1", "result": {"id": 3}}


def test_failure_response_has_no_result_key():
    frame = json.loads(encode_response("a1", failure("Client '9' not found")))
    assert frame == {"id": "a1", "error": "Client '9' not found"}


def test_null_result_is_still_success():
    response = decode_response('{"id": "a1", "result": null}')
    assert response_to_envelope(response) == {"success": True, "data": None}


def test_legacy_null_error_is_success():
    response = decode_response('{"id": "a1", "result": 5, "error": null}')
    assert response_to_envelope(response) == {"success": True, "data": 5}


def test_error_object_reduced_to_message():
    response = decode_response('{"id": "a1", "error": {"message": "boom"}}')
    assert response_to_envelope(response) == {"success": False, "error": "boom"}


def test_response_without_id_rejected():
    with pytest.raises(FrameError):
        decode_response('{"result": 1}')


@pytest.mark.parametrize("text", [
    '{"id": null, "error": "boom"}',
    '{"id": [1], "result": 1}',
    '{"id": 1.5, "result": 1}',
    '{"id": {"a": 1}, "result": 1}',
])
def test_response_with_invalid_id_rejected(text):
    with pytest.raises(FrameError):
        decode_response(text)
