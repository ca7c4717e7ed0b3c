from __future__ import annotations

import json
import threading
from collections import deque
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from ocr_engine_cli.config import EngineConfig
from ocr_engine_cli.errors import EndOfStream, ReadTimeout
from ocr_engine_cli.session import EngineSession

READY_LINE = "OCR init completed."
HELLO_REPLY = json.dumps(
    {
        "code": 100,
        "data": [{"text": "hello", "box": [[0, 0], [1, 0], [1, 1], [0, 1]], "score": 0.99}],
    }
)

Responder = Callable[[dict], Optional[str]]


def echo_hello(request: dict) -> Optional[str]:
    return HELLO_REPLY


class FakeChild:
    """Scripted stand-in for the engine process.

    ``responder`` turns each request into a reply line; returning ``None``
    means the engine closed its output instead of answering. With ``block``
    set, a read with nothing pending waits until ``terminate()`` is called.
    """

    def __init__(
        self, startup: Sequence[str], responder: Responder, hang: bool = False, block: bool = False
    ) -> None:
        self.pid = 4242
        self.pending = deque(startup)
        self.responder = responder
        self.hang = hang
        self.block = block
        self.writes: List[bytes] = []
        self.read_timeouts: List[Optional[float]] = []
        self.terminate_calls = 0
        self.output_closed = False
        self.reading = threading.Event()
        self._terminated = threading.Event()

    def write_line(self, data: bytes) -> None:
        if self.terminate_calls:
            raise BrokenPipeError("engine stdin is closed")
        assert b"\n" not in data
        self.writes.append(data)
        reply = self.responder(json.loads(data))
        if reply is None:
            self.output_closed = True
        else:
            self.pending.append(reply)

    def read_line(self, timeout: Optional[float] = None) -> str:
        self.read_timeouts.append(timeout)
        if self.pending:
            return self.pending.popleft()
        if self.block:
            self.reading.set()
            if not self._terminated.wait(timeout):
                raise ReadTimeout(f"no line within {timeout}")
            raise EndOfStream("engine output closed")
        if self.hang and not self.terminate_calls:
            raise ReadTimeout(f"no line within {timeout}")
        raise EndOfStream("engine output closed")

    def terminate(self) -> None:
        self.terminate_calls += 1
        self._terminated.set()

    def is_alive(self) -> bool:
        return not self.terminate_calls


class FakeSpawner:
    def __init__(
        self, startup: Sequence[str], responder: Responder, hang: bool = False, block: bool = False
    ) -> None:
        self.startup = list(startup)
        self.responder = responder
        self.hang = hang
        self.block = block
        self.calls: list = []
        self.child: Optional[FakeChild] = None

    def __call__(self, executable: Path, args: Sequence[str], cwd=None, inherit_stderr=False):
        self.calls.append({"executable": executable, "args": list(args), "cwd": cwd})
        self.child = FakeChild(self.startup, self.responder, hang=self.hang, block=self.block)
        return self.child


@pytest.fixture
def engine_config(tmp_path: Path) -> EngineConfig:
    return EngineConfig(exe_path=tmp_path / "engine" / "PaddleOCR-json.exe")


@pytest.fixture
def make_session(engine_config: EngineConfig):
    def _make(
        responder: Responder = echo_hello,
        startup: Sequence[str] = ("loading models...", READY_LINE),
        hang: bool = False,
        block: bool = False,
        **overrides,
    ):
        spawner = FakeSpawner(startup, responder, hang=hang, block=block)
        config = engine_config.with_overrides(**overrides) if overrides else engine_config
        session = EngineSession(config, spawner=spawner)
        return session, spawner.child

    return _make


@pytest.fixture
def spawner_factory():
    return FakeSpawner
