from __future__ import annotations

import pytest

from share_relay.infrastructure.bus.serializer import decode_client_frame, decode_queue_payload


def test_queue_payload_with_invalid_utf8_is_relayed_raw():
    assert decode_queue_payload(b"\xffnot-json") == {"raw": "\ufffdnot-json"}


def test_queue_payload_json_bytes_are_parsed():
    assert decode_queue_payload(b'{"id": 1}') == {"id": 1}


def test_client_null_frame_is_valid_json():
    assert decode_client_frame("null") is None


def test_client_frame_parse_failure_raises():
    with pytest.raises(ValueError):
        decode_client_frame("{not json")
    with pytest.raises(ValueError):
        decode_client_frame(b"\x80abc")
