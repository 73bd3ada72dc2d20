"""Failure taxonomy for billing operations.

Services raise these internally; public operations catch them at their
boundary and hand them back inside a ``Result``.
"""


class BillingError(Exception):
    """Base class for every failure a billing operation can report."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BillingError):
    """Missing or malformed input."""

    code = "validation"


class NotFoundError(BillingError):
    """A referenced id does not resolve."""

    code = "not_found"


class ConflictError(BillingError):
    """Duplicate key, or an amount bound would be exceeded."""

    code = "conflict"


class ConcurrentModificationError(ConflictError):
    """The aggregate changed between validation and commit."""


class StateError(BillingError):
    """Operation not allowed in the aggregate's current lifecycle state."""

    code = "state"


class OperationFailedError(BillingError):
    """Unexpected collaborator failure (store unavailable, etc.)."""

    code = "failed"
