"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a concurrent update that could not be merged."""


class SignatureError(DomainError):
    """Webhook payload whose signature is missing or does not verify."""


class StoreError(DomainError):
    """A write that the store reported as not having happened."""


def not_found(kind: str, record_id) -> str:
    """Return message for a missing record."""
    return f"{kind} {record_id} not found"


def store_write_failed(operation: str) -> str:
    """Return message for a failed store write."""
    return f"Store write failed: {operation}"


def store_lookup_failed(operation: str) -> str:
    """Return message for a failed store read."""
    return f"Store lookup failed: {operation}"


def cross_partition_match(match_type: str, amount) -> str:
    """Return message when a match would pair money in with an expense or money out with an invoice."""
    direction = "incoming" if amount > 0 else "outgoing"
    return f"Cannot match {direction} bank transaction ({amount}) to an {match_type}"


class GatewayError(DomainError):
    """The payment processor API could not be reached or refused a request."""
