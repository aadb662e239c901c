"""
Error taxonomy for order materialization.

Views map these onto HTTP statuses; schema mismatches and creation races are
absorbed inside the order service and never reach a caller.
"""


class OrderError(Exception):
    """Base class for every order-flow error."""


class InvalidInput(OrderError):
    """Missing or malformed identifiers, status values or lookup params."""


class InvalidDraft(InvalidInput):
    """The payment session lacks a customer name or a usable phone number."""


class NotFound(OrderError):
    """No order matches the requested identifier."""


class SessionNotPaid(OrderError):
    """The checkout session is valid but not paid yet; nothing to record."""

    def __init__(self, session_id, payment_status):
        super().__init__(f"Session {session_id} is not paid (payment_status={payment_status})")
        self.session_id = session_id
        self.payment_status = payment_status


class UpstreamFailure(OrderError):
    """Stripe or the database is unavailable; safe to retry from the trigger."""


class StorageError(UpstreamFailure):
    """A database operation failed.

    ``missing_column`` is set when the error text says the table lacks a
    column the write expected (an older schema).
    """

    def __init__(self, message, missing_column=False):
        super().__init__(message)
        self.missing_column = missing_column


class ConflictError(StorageError):
    """A uniqueness constraint rejected the write."""
