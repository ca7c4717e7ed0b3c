from __future__ import annotations

import threading
import time
import weakref
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn, Optional, Type, Union

from .config import EngineConfig
from .errors import (
    DecodeError,
    EndOfStream,
    EngineDown,
    EngineTimeout,
    NotReady,
    ProtocolDesync,
    ReadTimeout,
    RequestError,
    SpawnError,
    SpawnFailed,
)
from .images import ImageLike, image_to_bytes
from .process.base import ChildProcessHandle, Spawner
from .process.subprocess_child import SubprocessChild
from .protocol.codec import RawResponse, Request, decode, encode
from .schema import OCRResult, parse_result
from .utils.logging import get_logger

logger = get_logger("session")

_USE_CONFIG = object()


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


def _terminate_child(child: ChildProcessHandle) -> None:
    child.terminate()


def _check_timeout(timeout: Any) -> None:
    if timeout is None:
        return
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
        raise ValueError(f"timeout must be None or a non-negative number of seconds, got {timeout!r}")


class EngineSession:
    """
    Owns one OCR engine process and talks to it one request at a time.

    Construction blocks until the engine prints its readiness marker. Use
    the session as a context manager, or call ``close()``, to stop the
    engine; a finalizer stops it as well if the session is dropped.
    """

    def __init__(self, config: EngineConfig, spawner: Optional[Spawner] = None) -> None:
        self.config = config
        self._state = SessionState.INITIALIZING
        self._failure: Optional[Type[RequestError]] = None
        self._failure_reason = ""
        self._lock = threading.Lock()
        spawn = spawner or SubprocessChild.spawn
        try:
            self._child = spawn(
                config.exe_path,
                config.build_args(),
                cwd=config.resolved_working_dir(),
                inherit_stderr=config.inherit_stderr,
            )
        except SpawnError as exc:
            raise SpawnFailed(str(exc)) from exc
        self._finalizer = weakref.finalize(self, _terminate_child, self._child)
        try:
            self._await_ready()
        except BaseException:
            self._finalizer()
            raise
        self._state = SessionState.READY

    def __enter__(self) -> "EngineSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pid(self) -> Optional[int]:
        return self._child.pid

    def _await_ready(self) -> None:
        marker = self.config.readiness_marker
        started = time.monotonic()
        for _ in range(self.config.max_startup_lines):
            try:
                line = self._child.read_line(timeout=self._remaining_startup(started))
            except EndOfStream as exc:
                raise NotReady("Engine exited before it became ready") from exc
            except ReadTimeout as exc:
                raise NotReady(
                    f"Engine not ready after {self.config.startup_timeout}s"
                ) from exc
            except OSError as exc:
                raise NotReady(f"Reading engine startup output failed: {exc}") from exc
            logger.debug("engine: %s", line)
            if marker in line:
                logger.info(
                    "OCR engine ready (pid=%s) in %.2fs",
                    self.pid,
                    time.monotonic() - started,
                )
                return
        raise NotReady(
            f"Readiness marker {marker!r} not seen in the first "
            f"{self.config.max_startup_lines} lines of engine output"
        )

    def _remaining_startup(self, started: float) -> Optional[float]:
        if self.config.startup_timeout is None:
            return None
        return max(0.0, self.config.startup_timeout - (time.monotonic() - started))

    def send(self, request: Request, timeout: Any = _USE_CONFIG) -> RawResponse:
        """Send one request and block until the engine answers it.

        ``timeout`` (seconds) overrides ``config.request_timeout`` for this
        call; ``None`` waits forever.
        """
        if timeout is _USE_CONFIG:
            timeout = self.config.request_timeout
        _check_timeout(timeout)
        with self._lock:
            self._raise_if_failed()
            line = encode(request).encode("utf-8")
            logger.debug("Sending request (%d bytes)", len(line))
            try:
                self._child.write_line(line)
            except OSError as exc:
                self._fail(EngineDown, f"Writing to engine failed: {exc}", exc)
            except BaseException as exc:
                self._mark_failed(ProtocolDesync, f"Request write interrupted ({exc!r})")
                raise
            try:
                reply = self._child.read_line(timeout=timeout)
            except ReadTimeout as exc:
                self._fail(EngineTimeout, f"Engine did not answer within {timeout}s", exc)
            except (EndOfStream, OSError) as exc:
                self._fail(EngineDown, f"Engine stopped while answering: {exc}", exc)
            except BaseException as exc:
                # the reply is still in flight; the next read would pair it with the wrong request
                self._mark_failed(
                    ProtocolDesync, f"Request abandoned before its reply was read ({exc!r})"
                )
                raise
            try:
                response = decode(reply)
            except DecodeError as exc:
                self._fail(ProtocolDesync, str(exc), exc)
        logger.debug("Engine replied code=%s", response.code)
        return response

    def send_path(
        self, path: Union[str, Path], *, timeout: Any = _USE_CONFIG, **options: Any
    ) -> RawResponse:
        return self.send(Request.from_path(path, **options), timeout=timeout)

    def send_bytes(self, data: bytes, *, timeout: Any = _USE_CONFIG, **options: Any) -> RawResponse:
        return self.send(Request.from_bytes(data, **options), timeout=timeout)

    def send_clipboard(self, *, timeout: Any = _USE_CONFIG, **options: Any) -> RawResponse:
        return self.send(Request.from_clipboard(**options), timeout=timeout)

    def ocr(self, request: Request, *, timeout: Any = _USE_CONFIG) -> OCRResult:
        raw = self.send(request, timeout=timeout)
        return parse_result(raw, success_code=self.config.success_code)

    def ocr_path(
        self, path: Union[str, Path], *, timeout: Any = _USE_CONFIG, **options: Any
    ) -> OCRResult:
        return self.ocr(Request.from_path(path, **options), timeout=timeout)

    def ocr_bytes(self, data: bytes, *, timeout: Any = _USE_CONFIG, **options: Any) -> OCRResult:
        return self.ocr(Request.from_bytes(data, **options), timeout=timeout)

    def ocr_image(self, image: ImageLike, *, timeout: Any = _USE_CONFIG, **options: Any) -> OCRResult:
        return self.ocr_bytes(image_to_bytes(image), timeout=timeout, **options)

    def ocr_clipboard(self, *, timeout: Any = _USE_CONFIG, **options: Any) -> OCRResult:
        return self.ocr(Request.from_clipboard(**options), timeout=timeout)

    def close(self) -> None:
        """Stop the engine. Safe to call more than once, and from another thread."""
        if self._state is not SessionState.FAILED:
            self._state = SessionState.FAILED
            self._failure = EngineDown
            self._failure_reason = "engine session is closed"
        if self._finalizer.alive:
            logger.info("Closing OCR engine session (pid=%s)", self.pid)
        self._finalizer()

    def _raise_if_failed(self) -> None:
        if self._state is SessionState.FAILED and self._failure is not None:
            raise self._failure(self._failure_reason)

    def _mark_failed(self, error: Type[RequestError], reason: str) -> None:
        logger.error("OCR engine session failed: %s", reason)
        self._state = SessionState.FAILED
        self._failure = error
        self._failure_reason = reason
        self._finalizer()

    def _fail(self, error: Type[RequestError], reason: str, cause: BaseException) -> NoReturn:
        self._mark_failed(error, reason)
        raise error(reason) from cause
