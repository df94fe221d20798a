"""Storefront errors, layered on Protean's exception hierarchy.

Bad shape or range is a plain ``protean.exceptions.ValidationError`` and a
missing record is ``ObjectNotFoundError``, exactly as aggregates and
repositories raise them. The classes here name the business rejections a
caller has to tell apart. All of them carry ``messages``: a dict of field
name to a list of human-readable messages.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


def not_found(kind: str, identifier) -> ObjectNotFoundError:
    """A product, cart line or order that does not exist (or is not the caller's)."""
    error = ObjectNotFoundError({kind: [f"{kind.capitalize()} not found: {identifier}"]})
    error.kind = kind
    error.identifier = str(identifier)
    return error


class OutOfStock(ValidationError):
    """Requested quantity exceeds available stock."""

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__({"quantity": [f"Only {available} of product {product_id} available, {requested} requested"]})


class AmountMismatch(ValidationError):
    """Caller-supplied total disagrees with the total computed from the lines."""

    def __init__(self, expected, computed):
        self.expected = expected
        self.computed = computed
        super().__init__({"total_amount": [f"Expected total {expected} does not match computed total {computed}"]})


class InvalidTransition(InvalidOperationError):
    """Requested order status change is not in the transition table."""

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        msg = f"Cannot transition from {current} to {target}"
        if reason:
            msg = f"{msg} ({reason})"
        messages = {"order_status": [msg]}
        super().__init__(messages)
        self.messages = messages


class ConcurrentUpdate(InvalidOperationError):
    """A check-and-set kept losing to concurrent writers. Safe to retry."""

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


class Forbidden(InvalidOperationError):
    """Caller's role does not permit the operation."""

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


class GatewayUnavailable(Exception):
    """The payment gateway could not be reached or timed out. Retryable.

    ``order_id`` is set when an order already exists, so the caller can resume
    payment for that draft later.
    """

    def __init__(self, reason: str, order_id: str | None = None):
        self.reason = reason
        self.order_id = order_id
        self.messages = {"payment": [f"Payment gateway unavailable: {reason}"]}
        super().__init__(self.messages)
