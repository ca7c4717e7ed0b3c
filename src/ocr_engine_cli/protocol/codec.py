from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..errors import DecodeError

IMAGE_PATH_FIELD = "image_path"
IMAGE_BASE64_FIELD = "image_base64"
CLIPBOARD_FIELD = "clipboard"

RESERVED_FIELDS = frozenset({IMAGE_PATH_FIELD, IMAGE_BASE64_FIELD, CLIPBOARD_FIELD})


@dataclass(frozen=True)
class Request:
    """One OCR request: a single image source plus per-call engine options."""

    image_path: Optional[str] = None
    image_bytes: Optional[bytes] = None
    clipboard: bool = False
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        sources = sum(
            (self.image_path is not None, self.image_bytes is not None, bool(self.clipboard))
        )
        if sources != 1:
            raise ValueError("Request needs exactly one of image_path, image_bytes or clipboard")
        clashes = RESERVED_FIELDS.intersection(self.options)
        if clashes:
            raise ValueError(f"Options may not set reserved fields: {sorted(clashes)}")

    @classmethod
    def from_path(cls, path: Union[str, Path], **options: Any) -> "Request":
        return cls(image_path=str(path), options=options)

    @classmethod
    def from_bytes(cls, data: bytes, **options: Any) -> "Request":
        return cls(image_bytes=bytes(data), options=options)

    @classmethod
    def from_clipboard(cls, **options: Any) -> "Request":
        return cls(clipboard=True, options=options)


@dataclass(frozen=True)
class RawResponse:
    code: int
    data: Any = None


def encode(request: Request) -> str:
    """Serialize a request to a single JSON line (without the terminator)."""
    payload: Dict[str, Any] = {}
    if request.image_path is not None:
        payload[IMAGE_PATH_FIELD] = request.image_path
    elif request.image_bytes is not None:
        payload[IMAGE_BASE64_FIELD] = base64.b64encode(request.image_bytes).decode("ascii")
    else:
        payload[CLIPBOARD_FIELD] = True
    payload.update(request.options)
    # ensure_ascii keeps the line free of raw control characters
    try:
        return json.dumps(
            payload, ensure_ascii=True, separators=(",", ":"), default=_option_value
        )
    except TypeError as exc:
        raise ValueError(f"Request options are not JSON serializable: {exc}") from exc


def _option_value(value: Any) -> Any:
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"{type(value).__name__} option values cannot be sent to the engine")


def decode(line: str) -> RawResponse:
    """Parse one engine output line into a ``RawResponse``."""
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Engine line is not JSON: {line[:200]!r}") from exc
    if not isinstance(obj, dict):
        raise DecodeError(f"Engine line is not a JSON object: {line[:200]!r}")
    code = obj.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        raise DecodeError(f"Engine response has no integer 'code': {line[:200]!r}")
    return RawResponse(code=code, data=obj.get("data"))
