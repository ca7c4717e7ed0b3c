"""
Client for a line-delimited JSON OCR engine running as a child process.

`EngineSession` starts the engine, waits for its readiness marker and then
exchanges one JSON request line for one JSON response line at a time.
"""

from .config import EngineConfig, load_config
from .errors import (
    EngineDown,
    EngineError,
    EngineTimeout,
    InitError,
    NotReady,
    ProtocolDesync,
    RequestError,
    SpawnFailed,
)
from .protocol import RawResponse, Request
from .schema import OCRResult, TextBlock, parse_result
from .session import EngineSession, SessionState

__all__ = [
    "EngineConfig",
    "EngineDown",
    "EngineError",
    "EngineSession",
    "EngineTimeout",
    "InitError",
    "NotReady",
    "OCRResult",
    "ProtocolDesync",
    "RawResponse",
    "Request",
    "RequestError",
    "SessionState",
    "SpawnFailed",
    "TextBlock",
    "load_config",
    "parse_result",
]
