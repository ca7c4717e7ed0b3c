from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, Sequence


class ChildProcessHandle(Protocol):
    pid: Optional[int]

    def write_line(self, data: bytes) -> None:
        """Write ``data`` plus a newline to the child's stdin and flush."""
        ...

    def read_line(self, timeout: Optional[float] = None) -> str:
        """Block until the child prints a full line; return it without the newline."""
        ...

    def terminate(self) -> None:
        ...

    def is_alive(self) -> bool:
        ...


class Spawner(Protocol):
    def __call__(
        self,
        executable: Path,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        inherit_stderr: bool = False,
    ) -> ChildProcessHandle:
        ...
