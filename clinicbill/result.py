from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from clinicbill.errors import BillingError, OperationFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a billing operation: a value, or a typed error."""

    value: T | None = None
    error: BillingError | None = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: BillingError) -> Result[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str:
        return self.error.message if self.error is not None else ""

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def run_operation(
    description: str,
    operation: Callable[[], T],
    rollback: Callable[[], None] | None = None,
) -> Result[T]:
    """Run ``operation`` and fold its outcome into a Result.

    Business-rule failures come back as-is. Anything else is logged and
    reported as ``OperationFailedError("Failed to <description>: ...")``.
    On both failure paths ``rollback`` runs before the Result is returned,
    so a failed operation never leaves a transaction open on the connection.
    """
    try:
        return Result.success(operation())
    except BillingError as exc:
        logger.warning("Could not %s: %s", description, exc.message)
        _rollback(rollback, description)
        return Result.failure(exc)
    except Exception as exc:
        logger.exception("Unexpected error while trying to %s", description)
        _rollback(rollback, description)
        return Result.failure(OperationFailedError(f"Failed to {description}: {exc}"))


def _rollback(rollback: Callable[[], None] | None, description: str) -> None:
    if rollback is None:
        return
    try:
        rollback()
    except Exception:
        logger.exception("Rollback failed after trying to %s", description)
