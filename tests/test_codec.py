from __future__ import annotations

import pytest

from ledgerlink.errors import EncodingError, FailureKind, MalformedMessage
from ledgerlink.proto.codec import (
    bytes_to_request,
    bytes_to_response,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
    request_to_bytes,
)
from ledgerlink.proto.messages import Request, RequestType, Response


def test_encode_balance_request():
    req = Request(RequestType.BALANCE, user_id=42)
    assert encode_request(req) == "2|42|0.0||"


def test_encode_response():
    resp = Response(True, 100.50, "", "OK")
    assert encode_response(resp) == "1|100.5||OK"
    assert encode_response(Response(False, 0.0, "x", "no")) == "0|0.0|x|no"


@pytest.mark.parametrize(
    "req",
    [
        Request(RequestType.DEPOSIT, 7, 12.25),
        Request(RequestType.WITHDRAW, 0, 0.1 + 0.2),
        Request(RequestType.UPLOAD, 3, 0.0, "notes.txt", "hello world"),
        Request(RequestType.DOWNLOAD, -5, 1e-7, "report.csv", ""),
        Request(RequestType.QUIT),
    ],
)
def test_request_roundtrip(req):
    assert decode_request(encode_request(req)) == req


def test_response_roundtrip_keeps_float_precision():
    resp = Response(True, 1234567.891011, "payload", "done")
    assert decode_response(encode_response(resp)) == resp


def test_final_field_may_contain_delimiter():
    req = Request(RequestType.UPLOAD, 1, 0.0, "a.txt", "x|y|z")
    assert decode_request(encode_request(req)).data == "x|y|z"
    resp = Response(False, 0.0, "", "bad | worse")
    assert decode_response(encode_response(resp)).message == "bad | worse"


def test_delimiter_in_inner_field_is_rejected():
    with pytest.raises(EncodingError) as info:
        encode_request(Request(RequestType.UPLOAD, 1, 0.0, "a|b.txt", ""))
    assert info.value.kind is FailureKind.ENCODING
    with pytest.raises(EncodingError):
        encode_response(Response(True, 0.0, "a|b", "OK"))


@pytest.mark.parametrize("text", ["", "2", "2|42|0.0", "2|42|0.0|name"])
def test_short_request_is_malformed(text):
    with pytest.raises(MalformedMessage) as info:
        decode_request(text)
    assert info.value.kind is FailureKind.MALFORMED


@pytest.mark.parametrize("text", ["1", "1|2.0", "1|2.0|data"])
def test_short_response_is_malformed(text):
    with pytest.raises(MalformedMessage):
        decode_response(text)


@pytest.mark.parametrize(
    "text",
    [
        "x|1|0.0||",
        "2|abc|0.0||",
        "2|1|lots||",
        "99|1|0.0||",
        "2| 42 |0.0||",
        "2|4_2|0.0||",
        "2|+42|0.0||",
        "2|42|nan||",
        "2|42|-inf||",
        "2|42| 1.5||",
        "2|42|1_000.0||",
        "2|42|1e+999||",
        "2|42|.5||",
    ],
)
def test_bad_request_fields(text):
    with pytest.raises(MalformedMessage):
        decode_request(text)


def test_success_flag_must_be_binary():
    with pytest.raises(MalformedMessage):
        decode_response("yes|1.0||OK")


def test_bytes_helpers():
    req = Request(RequestType.DEPOSIT, 5, 2.5)
    assert request_to_bytes(req) == b"0|5|2.5||"
    assert bytes_to_request(b"0|5|2.5||") == req
    assert bytes_to_response("1|3.0|café|ok".encode("utf-8")).data == "café"
    with pytest.raises(MalformedMessage):
        bytes_to_request(b"\xff\xfe")


def test_exponent_forms_from_repr_decode():
    assert decode_response("1|1e+16||OK").balance == 1e16
    assert decode_request("0|1|-2.5e-07||").amount == -2.5e-07


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_are_not_encoded(value):
    with pytest.raises(EncodingError):
        encode_request(Request(RequestType.DEPOSIT, 1, value))
    with pytest.raises(EncodingError):
        encode_response(Response(True, value, "", "OK"))


def test_response_balance_must_be_plain_decimal():
    with pytest.raises(MalformedMessage):
        decode_response("1|nan||OK")
    with pytest.raises(MalformedMessage):
        decode_response("1| 2.0||OK")
