"""Uniform result envelope and error taxonomy for GitHub operations.

Every public operation of the client returns a Result instead of raising.
A failed Result carries an OperationError whose kind is one of:

- AUTH: credentials missing, invalid or expired
- NOT_FOUND: the remote resource does not exist or is inaccessible
- CONFLICT: version-token mismatch or duplicate name
- VALIDATION: malformed or missing input rejected locally or by the API
- REMOTE: any other transport, API or timeout failure
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from pydantic import ValidationError

T = TypeVar("T")
U = TypeVar("U")


class ErrorKind(str, Enum):
    """Classification of a failed operation."""

    AUTH = "auth"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    REMOTE = "remote"


@dataclass(frozen=True)
class OperationError:
    """Describes why an operation failed.

    Attributes:
        kind: Error classification used by callers to decide how to react.
        message: Human-readable error description.
        status_code: HTTP status code from the remote API, when one was received.
    """

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    def with_prefix(self, prefix: str) -> "OperationError":
        """Return a copy whose message is prefixed, keeping kind and status."""
        return replace(self, message=f"{prefix}: {self.message}")

    def with_kind(self, kind: ErrorKind) -> "OperationError":
        """Return a copy reclassified as ``kind``."""
        return replace(self, kind=kind)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success/failure envelope returned by every client operation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is
    meaningful. Use the ``ok`` and ``fail`` constructors rather than
    building instances directly.

    Example:
        >>> result = Result.ok(42)
        >>> result.success, result.value
        (True, 42)
        >>> Result.fail(ErrorKind.NOT_FOUND, "missing").error_message
        'missing'
    """

    success: bool
    value: Optional[T] = None
    error: Optional[OperationError] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> "Result[T]":
        return cls(
            success=False,
            error=OperationError(kind=kind, message=message, status_code=status_code),
        )

    @classmethod
    def from_error(cls, error: OperationError) -> "Result[T]":
        return cls(success=False, error=error)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Transform the success value, leaving failures untouched.

        A payload that ``fn`` cannot interpret (missing keys, wrong types,
        failed model validation) becomes a REMOTE failure so that parsing
        never raises across the client boundary.
        """
        if not self.success:
            return Result.from_error(self.error)
        try:
            return Result.ok(fn(self.value))
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            return Result.fail(
                ErrorKind.REMOTE,
                f"Unexpected response payload: {e}",
            )
