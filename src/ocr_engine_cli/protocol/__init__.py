"""Line-delimited JSON wire format spoken by the OCR engine."""

from .codec import RawResponse, Request, decode, encode

__all__ = ["RawResponse", "Request", "decode", "encode"]
