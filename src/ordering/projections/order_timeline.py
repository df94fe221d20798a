"""Order timeline: append-only audit trail of every order event."""

import json
import uuid
from datetime import UTC, datetime

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.events import (
    CartCleared,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCaptured,
    PaymentFailed,
    PaymentIntentCreated,
)
from ordering.order.order import Order


@ordering.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True, max_length=50)
    payload = Text()  # JSON: event data
    occurred_at = DateTime(required=True)


def _add_entry(order_id, event_type, **payload):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=str(order_id),
            event_type=event_type,
            payload=json.dumps(payload, default=str),
            occurred_at=datetime.now(UTC),
        )
    )


def timeline_for(order_id, event_type: str | None = None) -> list[OrderTimeline]:
    """Entries for one order, oldest first."""
    filters = {"order_id": str(order_id)}
    if event_type is not None:
        filters["event_type"] = event_type
    repo = current_domain.repository_for(OrderTimeline)
    return repo._dao.query.filter(**filters).order_by("occurred_at").all().items


@ordering.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        _add_entry(
            event.order_id,
            "OrderPlaced",
            user_id=event.user_id,
            total_amount=event.total_amount,
            line_count=event.line_count,
            payment_method=event.payment_method,
        )

    @on(PaymentIntentCreated)
    def on_payment_intent_created(self, event):
        _add_entry(event.order_id, "PaymentIntentCreated", amount=event.amount)

    @on(PaymentCaptured)
    def on_payment_captured(self, event):
        _add_entry(
            event.order_id,
            "PaymentCaptured",
            payment_reference=event.payment_reference,
            payer_reference=event.payer_reference,
            amount=event.amount,
        )

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        _add_entry(event.order_id, "PaymentFailed", payment_reference=event.payment_reference, reason=event.reason)

    @on(CartCleared)
    def on_cart_cleared(self, event):
        _add_entry(event.order_id, "CartCleared", user_id=event.user_id, lines_touched=event.lines_touched)

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        _add_entry(
            event.order_id,
            "OrderStatusChanged",
            from_status=event.from_status,
            to_status=event.to_status,
            actor=event.actor,
        )
