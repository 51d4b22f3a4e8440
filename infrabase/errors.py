"""Typed failures raised by the repository and query engine."""

from __future__ import annotations


class InventoryError(Exception):
    """Base class; carries the hostname and operation the failure relates to."""

    kind = "error"

    def __init__(self, message: str, *, hostname: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.hostname = hostname
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class DuplicateKey(InventoryError):
    kind = "duplicate"

    def __init__(self, hostname: str, *, operation: str | None = None):
        super().__init__(f"host {hostname!r} already exists", hostname=hostname, operation=operation)


class NotFound(InventoryError):
    kind = "not-found"

    def __init__(self, hostname: str, *, operation: str | None = None, what: str = "host"):
        super().__init__(f"{what} {hostname!r} not found", hostname=hostname, operation=operation)


class ConnectionFailure(InventoryError):
    """Store unreachable or authentication rejected. Never retried internally."""

    kind = "connection"


class Timeout(InventoryError):
    kind = "timeout"

    def __init__(self, hostname: str, timeout: float, *, operation: str | None = None):
        super().__init__(
            f"lookup for {hostname!r} did not finish within {timeout:g}s",
            hostname=hostname,
            operation=operation,
        )
        self.timeout = timeout


class MalformedInput(InventoryError):
    kind = "malformed"


class ResolveFailed(InventoryError):
    """A per-host resolver raised something that is not an InventoryError."""

    def __init__(self, hostname: str, cause: BaseException, *, operation: str | None = None):
        super().__init__(
            f"resolving {hostname!r} failed: {type(cause).__name__}: {cause}",
            hostname=hostname,
            operation=operation,
        )
        self.cause = cause
