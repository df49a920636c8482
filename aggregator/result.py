"""Result type returned by every external collaborator.

Collaborators never raise for expected failures (missing pool, revert,
timeout). They hand back a CallResult and the adapters decide what a
failure means, which for quoting is always "no quote".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class CallFailure(Enum):
    """Why a collaborator call produced no value."""

    REVERTED = "reverted"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Success value or a tagged failure reason.

    Examples:
        result = CallResult.ok(42)
        assert result.is_ok and result.value == 42

        result = CallResult.fail(CallFailure.REVERTED, "STF")
        assert result.is_error
        assert result.value_or(0) == 0
    """

    value: T | None = None
    failure: CallFailure | None = None
    detail: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.failure is None

    @property
    def is_error(self) -> bool:
        return self.failure is not None

    def value_or(self, default: T) -> T:
        """Return the value on success, `default` on failure."""
        if self.failure is not None or self.value is None:
            return default
        return self.value

    @classmethod
    def ok(cls, value: T) -> CallResult[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, failure: CallFailure, detail: str | None = None) -> CallResult[T]:
        return cls(failure=failure, detail=detail)


__all__ = ["CallFailure", "CallResult"]
