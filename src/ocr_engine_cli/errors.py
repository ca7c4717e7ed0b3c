"""Exception hierarchy for engine supervision and the line protocol."""

from __future__ import annotations


class EngineError(RuntimeError):
    pass


class SpawnError(EngineError):
    """The engine executable could not be started."""


class EndOfStream(EngineError):
    """The engine closed its output before a full line arrived."""


class ReadTimeout(EngineError, TimeoutError):
    pass


class DecodeError(EngineError, ValueError):
    """A line from the engine is not a well-formed response."""


class InitError(EngineError):
    pass


class SpawnFailed(InitError):
    pass


class NotReady(InitError):
    """The readiness marker was not observed during startup."""


class RequestError(EngineError):
    pass


class EngineDown(RequestError):
    """The engine process exited or its pipes were closed."""


class EngineTimeout(EngineDown):
    pass


class ProtocolDesync(RequestError):
    """Requests and responses can no longer be correlated."""
