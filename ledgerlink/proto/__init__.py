"""Message records and their wire codec."""

from .codec import decode_request, decode_response, encode_request, encode_response
from .messages import Request, RequestType, Response

__all__ = [
    "Request",
    "RequestType",
    "Response",
    "decode_request",
    "decode_response",
    "encode_request",
    "encode_response",
]
