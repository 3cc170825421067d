"""Error taxonomy for substitute configuration and dispatch.

Setup-time problems surface immediately as ``ConfigurationError``. Dispatch
failures are raised from inside the intercepted call and propagate to the
caller unchanged. Nothing here is retried.
"""

from __future__ import annotations


class UnderstudyError(Exception):
    """Base class for every error raised by understudy."""


class ConfigurationError(UnderstudyError, ValueError):
    """Raised when a setup call is invalid for the substitute's contract."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)


class UnimplementedOperation(UnderstudyError, NotImplementedError):
    """Raised when a call has no behavior, no sequence and no fallback."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"No mock setup for method: {operation}")


class SequenceExhausted(UnderstudyError, LookupError):
    """Raised when a matched sequence has no remaining entries."""

    def __init__(self, operation: str, key: str) -> None:
        self.operation = operation
        self.key = key
        super().__init__(f"No more results available for {operation}.")


class TypeMismatch(UnderstudyError, TypeError):
    """Raised when a produced value cannot take the declared return shape."""

    def __init__(self, value: object, target: object) -> None:
        self.value = value
        self.target = target
        super().__init__(f"Cannot convert {value!r} to {target!r}")


class NotFound(UnderstudyError, LookupError):
    """Raised when an object was not created by the substitute registry."""


class NullArgument(UnderstudyError, ValueError):
    """Raised when ``None`` is passed where a substitute is required."""


class VerificationError(UnderstudyError, AssertionError):
    """Raised when a recorded call count differs from the expected one."""

    def __init__(self, operation: str, expected: int, actual: int) -> None:
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Method {operation} was expected to be called {expected} times "
            f"but was actually called {actual} times."
        )
