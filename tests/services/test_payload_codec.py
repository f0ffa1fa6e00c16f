import json

import pytest

from faultqueue.errors import PayloadDecodeError
from faultqueue.services.payload_codec import decode_request, encode_request
from tests.helpers import make_request


def test_round_trip_keeps_unknown_keys() -> None:
    request = make_request(
        season_list=[1, 2],
        requested_users=["ann"],
        extra={"poster_path": "/p.jpg", "nested": {"a": 1}},
    )

    decoded = decode_request(encode_request(request))

    assert decoded == request


def test_encoding_is_stable() -> None:
    request = make_request(extra={"z": 1, "a": 2})
    assert encode_request(request) == encode_request(decode_request(encode_request(request)))


@pytest.mark.parametrize(
    "content",
    [b"", b"   ", b"not json", b"[1, 2]", b'{"title": "no id"}', b'{"request_id": 1}'],
)
def test_decode_rejects_invalid_snapshots(content: bytes) -> None:
    with pytest.raises(PayloadDecodeError):
        decode_request(content)


@pytest.mark.parametrize(
    ("stored", "expected"),
    [("false", False), ("False", False), ("true", True), (1, False), (True, True)],
)
def test_decode_only_accepts_real_approval_flags(stored: object, expected: bool) -> None:
    content = json.dumps({"request_id": 1, "item_kind": "Movie", "approved": stored})

    assert decode_request(content.encode("utf-8")).approved is expected
