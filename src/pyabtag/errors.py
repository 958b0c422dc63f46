"""Clear exceptions for pyabtag: bad tag paths, connection and protocol I/O failures, computation faults."""

from typing import Any


class PyABTagError(Exception):
    """Base exception for pyabtag."""

    pass


class TagPathError(PyABTagError):
    """Raised when a tag name is malformed (symbolic path validation failed)."""

    def __init__(self, tag: str, message: str | None = None) -> None:
        self.tag = tag
        self._msg = message or f"Invalid tag path: {tag!r}"
        super().__init__(self._msg)


class ConnectError(PyABTagError):
    """Raised when the controller or serial device cannot be reached at startup."""

    def __init__(self, target: str, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.target = target
        self.cause = cause
        super().__init__(message or f"Failed to connect to {target}")


class ProtocolIOError(PyABTagError):
    """
    Raised when a tag or register read/write fails mid-session.

    `transient` marks faults worth retrying (timeouts, dropped links); permanent
    faults (exception responses, bad addressing, type mismatches) are not.
    """

    def __init__(
        self,
        message: str,
        *,
        target: str | None = None,
        transient: bool = False,
        cause: BaseException | None = None,
    ) -> None:
        self.target = target
        self.transient = transient
        self.cause = cause
        super().__init__(message)


class ProtocolReadError(ProtocolIOError):
    """A register or tag read failed."""


class ProtocolWriteError(ProtocolIOError):
    """A tag write failed."""


class ComputationFault(PyABTagError):
    """Raised when flow correction produces a non-finite rate."""

    def __init__(self, message: str, *, inputs: dict[str, Any] | None = None) -> None:
        self.inputs = inputs or {}
        super().__init__(message)
