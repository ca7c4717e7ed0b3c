from __future__ import annotations

import subprocess
import sys
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import IO, Optional, Sequence, Union

from ..errors import EndOfStream, ReadTimeout, SpawnError
from ..utils.logging import get_logger

logger = get_logger("process")

TERMINATE_GRACE_SECONDS = 3.0

_EOF = object()
_QueueItem = Union[bytes, BaseException, object]


class SubprocessChild:
    """Engine process with a piped stdin and a line-pumped stdout.

    A daemon thread reads stdout into a queue. ``read_line`` waits on the
    queue, which lets it honour a timeout and return once the process dies.
    """

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process
        self._stdin: Optional[IO[bytes]] = process.stdin
        self._lines: "Queue[_QueueItem]" = Queue()
        self._eof = False
        self._terminated = False
        self._terminate_lock = threading.Lock()
        self._reader = threading.Thread(
            target=self._pump_stdout,
            name=f"engine-stdout-{process.pid}",
            daemon=True,
        )
        self._reader.start()

    @classmethod
    def spawn(
        cls,
        executable: Path,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        inherit_stderr: bool = False,
    ) -> "SubprocessChild":
        command = [str(executable), *args]
        logger.info("Starting OCR engine: %s", " ".join(command))
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=None if inherit_stderr else subprocess.DEVNULL,
                cwd=str(cwd) if cwd else None,
                creationflags=subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0,
            )
        except OSError as exc:
            raise SpawnError(f"Cannot start engine {executable}: {exc}") from exc
        logger.info("Engine process started, pid=%s", process.pid)
        return cls(process)

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid

    def is_alive(self) -> bool:
        return not self._terminated and self._process.poll() is None

    def write_line(self, data: bytes) -> None:
        stdin = self._stdin
        if stdin is None or self._terminated:
            raise BrokenPipeError("engine stdin is closed")
        try:
            stdin.write(data + b"\n")
            stdin.flush()
        except ValueError as exc:
            # file object closed underneath us by terminate()
            raise BrokenPipeError("engine stdin is closed") from exc

    def read_line(self, timeout: Optional[float] = None) -> str:
        if self._eof:
            raise EndOfStream("engine output is closed")
        try:
            item = self._lines.get(timeout=timeout)
        except Empty:
            raise ReadTimeout(f"no line from engine within {timeout:.1f}s") from None
        if item is _EOF:
            self._eof = True
            raise EndOfStream("engine output closed before a full line arrived")
        if isinstance(item, BaseException):
            self._eof = True
            raise item
        return item.decode("utf-8", errors="replace").rstrip("\r")  # type: ignore[union-attr]

    def terminate(self) -> None:
        with self._terminate_lock:
            if self._terminated:
                return
            self._terminated = True
        process = self._process
        self._close_stdin()
        if process.poll() is None:
            logger.info("Terminating engine process pid=%s", process.pid)
            try:
                process.terminate()
                process.wait(timeout=TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.warning("Engine pid=%s ignored terminate, killing", process.pid)
                process.kill()
                process.wait()
            except OSError as exc:
                logger.debug("Terminate of pid=%s failed: %s", process.pid, exc)
        self._reader.join(timeout=TERMINATE_GRACE_SECONDS)
        if process.stdout is not None and not self._reader.is_alive():
            process.stdout.close()
        # wake any reader still waiting on the queue
        self._lines.put(_EOF)

    def _close_stdin(self) -> None:
        stdin, self._stdin = self._stdin, None
        if stdin is None:
            return
        try:
            stdin.close()
        except (OSError, ValueError):
            pass

    def _pump_stdout(self) -> None:
        stdout = self._process.stdout
        if stdout is None:
            self._lines.put(_EOF)
            return
        try:
            for raw in iter(stdout.readline, b""):
                if raw.endswith(b"\n"):
                    self._lines.put(raw[:-1])
                else:
                    logger.debug("Dropping partial engine line: %r", raw[:200])
        except (OSError, ValueError) as exc:
            self._lines.put(OSError(f"reading engine output failed: {exc}"))
            return
        self._lines.put(_EOF)
