"""Domain events for the Order aggregate.

Each is raised by the write that caused it and leaves the aggregate only if
that write commits. ``PaymentCaptured`` is raised once per order, by the
capture that wins the revision claim, so consumers never see a capture
twice.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A pending order was created from a cart snapshot."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    total_amount = Float(required=True)
    line_count = Integer(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentIntentCreated:
    __version__ = "v1"

    order_id = Identifier(required=True)
    amount = Float(required=True)


@ordering.event(part_of="Order")
class PaymentCaptured:
    """The gateway confirmed the payment and the order moved to confirmed."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    payment_reference = String(required=True)
    payer_reference = String(required=True)
    amount = Float(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String(required=True)
    reason = String(required=True)


@ordering.event(part_of="Order")
class CartCleared:
    """The order's lines were taken out of its owner's cart."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    lines_touched = Integer(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = "v1"

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor = String(required=True)
