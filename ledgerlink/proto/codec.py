"""Delimited text codec for :class:`Request` and :class:`Response` records.

Wire layout::

    request   TYPE|USER_ID|AMOUNT|FILENAME|DATA
    response  SUCCESS|BALANCE|DATA|MESSAGE

The last field of each record absorbs the remaining text, so it may contain
the delimiter. Earlier text fields may not; encoding one that does raises
:class:`EncodingError` instead of producing a string that decodes differently.
"""

from __future__ import annotations

import math
import re

from ..constants import FIELD_DELIMITER
from ..errors import EncodingError, MalformedMessage
from .messages import Request, RequestType, Response

REQUEST_FIELDS = 5
RESPONSE_FIELDS = 4

# 只接受编码端会产生的形式：无空白、无下划线、无 nan/inf
INT_PATTERN = re.compile(r"-?[0-9]+")
FLOAT_PATTERN = re.compile(r"-?[0-9]+(\.[0-9]+)?(e[-+][0-9]+)?")


def _format_float(name: str, value: float) -> str:
    number = float(value)
    if not math.isfinite(number):
        raise EncodingError(f"{name} must be finite, got {number!r}")
    # repr 给出可精确往返的最短十进制
    return repr(number)


def _check_text(name: str, value: str) -> str:
    if not isinstance(value, str):
        raise EncodingError(f"{name} must be str, got {type(value).__name__}")
    return value


def _check_field(name: str, value: str) -> str:
    """校验非末尾文本字段不含分隔符。"""

    _check_text(name, value)
    if FIELD_DELIMITER in value:
        raise EncodingError(f"{name} must not contain {FIELD_DELIMITER!r}")
    return value


def _split(text: str, count: int, record: str) -> list[str]:
    """从左侧切分，最后一个字段吸收剩余文本。"""

    parts = text.split(FIELD_DELIMITER, count - 1)
    if len(parts) != count:
        raise MalformedMessage(
            f"{record} needs {count - 1} delimiters, found {len(parts) - 1}"
        )
    return parts


def _parse_int(raw: str, name: str) -> int:
    if INT_PATTERN.fullmatch(raw) is None:
        raise MalformedMessage(f"{name} is not an integer: {raw!r}")
    return int(raw)


def _parse_float(raw: str, name: str) -> float:
    if FLOAT_PATTERN.fullmatch(raw) is None:
        raise MalformedMessage(f"{name} is not a number: {raw!r}")
    value = float(raw)
    if not math.isfinite(value):  # 指数溢出，例如 1e+999
        raise MalformedMessage(f"{name} is out of range: {raw!r}")
    return value


def encode_request(req: Request) -> str:
    """将请求编码为分隔文本。"""

    fields = [
        str(int(req.type)),  # 类型以整数表示
        str(int(req.user_id)),
        _format_float("amount", req.amount),
        _check_field("filename", req.filename),
        _check_text("data", req.data),  # 末尾字段允许分隔符
    ]
    return FIELD_DELIMITER.join(fields)


def decode_request(text: str) -> Request:
    """解析分隔文本为请求。"""

    type_raw, user_raw, amount_raw, filename, data = _split(text, REQUEST_FIELDS, "request")
    type_value = _parse_int(type_raw, "type")
    try:
        req_type = RequestType(type_value)
    except ValueError as exc:
        raise MalformedMessage(f"unknown request type: {type_value}") from exc
    return Request(
        type=req_type,
        user_id=_parse_int(user_raw, "user_id"),
        amount=_parse_float(amount_raw, "amount"),
        filename=filename,
        data=data,
    )


def encode_response(resp: Response) -> str:
    """将应答编码为分隔文本。"""

    fields = [
        "1" if resp.success else "0",
        _format_float("balance", resp.balance),
        _check_field("data", resp.data),
        _check_text("message", resp.message),
    ]
    return FIELD_DELIMITER.join(fields)


def decode_response(text: str) -> Response:
    """解析分隔文本为应答。"""

    success_raw, balance_raw, data, message = _split(text, RESPONSE_FIELDS, "response")
    # 成功标志只接受 0/1
    if success_raw not in {"0", "1"}:
        raise MalformedMessage(f"success flag must be 0 or 1, got {success_raw!r}")
    return Response(
        success=success_raw == "1",
        balance=_parse_float(balance_raw, "balance"),
        data=data,
        message=message,
    )


def _to_text(payload: bytes) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMessage("payload is not valid UTF-8") from exc


def request_to_bytes(req: Request) -> bytes:
    return encode_request(req).encode("utf-8")


def bytes_to_request(payload: bytes) -> Request:
    return decode_request(_to_text(payload))


def response_to_bytes(resp: Response) -> bytes:
    return encode_response(resp).encode("utf-8")


def bytes_to_response(payload: bytes) -> Response:
    return decode_response(_to_text(payload))
