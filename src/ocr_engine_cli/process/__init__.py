"""Child process handles for the OCR engine."""

from .base import ChildProcessHandle, Spawner
from .subprocess_child import SubprocessChild

__all__ = ["ChildProcessHandle", "Spawner", "SubprocessChild"]
