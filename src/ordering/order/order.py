"""Order aggregate (CQRS): an immutable snapshot of a purchase attempt plus
its payment and fulfillment progress.

Lines, address and total are frozen at creation: later catalogue price
changes or address-book edits never reach a placed order. The total is
computed once, from the lines, and never recomputed.

Writers claim the order's revision before changing it (see
ordering.order.ledger), so of two concurrent writers holding the same
revision exactly one proceeds.
"""

from datetime import UTC, datetime
from decimal import Decimal

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import (
    CartCleared,
    OrderPlaced,
    OrderStatusChanged,
    PaymentCaptured,
    PaymentFailed,
    PaymentIntentCreated,
)
from ordering.order.status import (
    OrderStatus,
    PaymentStatus,
    TransitionActor,
    assert_can_transition,
)
from shared.money import to_money


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class AddressSnapshot:
    """A shipping address captured at checkout time.

    Once recorded on an Order, the address is immutable: it represents where
    the order was shipped, regardless of future edits to the customer's
    address book.
    """

    address_line = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    phone = String(required=True, max_length=30)
    notes = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """A cart item as it was at order creation: title, image and unit price included."""

    position = Integer(required=True, min_value=0)
    product_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    image = String(max_length=500)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price) * self.quantity


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier(required=True)
    lines = HasMany(OrderLine)
    address = ValueObject(AddressSnapshot)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(required=True, max_length=50)
    payment_reference = String(max_length=255)
    payer_reference = String(max_length=255)
    total_amount = Float(required=True, min_value=0.0)
    cart_cleared = Boolean(default=False)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def paid_order_must_carry_its_payment_reference(self):
        if self.payment_status == PaymentStatus.PAID.value and not self.payment_reference:
            raise ValidationError({"payment_reference": ["A paid order must carry its payment reference"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id, lines_data, address: AddressSnapshot, payment_method, order_id=None):
        """Create a new pending order from checkout data.

        Args:
            user_id: The customer placing the order.
            lines_data: List of dicts with product_id, title, image,
                        unit_price, quantity.
            address: Shipping address snapshot.
            payment_method: Payment method label chosen by the customer.
        """
        if not lines_data:
            raise ValidationError({"lines": ["An order needs at least one line"]})
        for line in lines_data:
            quantity = line["quantity"]
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError({"quantity": [f"Quantity for {line['product_id']} must be a positive integer"]})

        now = datetime.now(UTC)
        lines = [
            OrderLine(
                position=position,
                product_id=str(line["product_id"]),
                title=line["title"],
                image=line.get("image"),
                unit_price=float(to_money(line["unit_price"])),
                quantity=line["quantity"],
            )
            for position, line in enumerate(lines_data)
        ]
        total = sum((line.line_total for line in lines), Decimal("0"))

        values = dict(
            user_id=str(user_id),
            lines=lines,
            address=address,
            order_status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=payment_method,
            total_amount=float(total),
            cart_cleared=False,
            revision=0,
            created_at=now,
            updated_at=now,
        )
        if order_id is not None:
            values["id"] = str(order_id)
        order = cls(**values)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                total_amount=float(total),
                line_count=len(lines),
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def payment(self) -> PaymentStatus:
        return PaymentStatus(self.payment_status)

    @property
    def is_paid(self) -> bool:
        return self.payment == PaymentStatus.PAID

    @property
    def total(self) -> Decimal:
        return to_money(self.total_amount)

    @property
    def ordered_lines(self) -> list[OrderLine]:
        return sorted(self.lines, key=lambda line: line.position)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_intent(self):
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentIntentCreated(order_id=str(self.id), amount=self.total_amount))

    def record_capture(self, payment_reference, payer_reference):
        """Mark the payment paid and confirm the order, all at once."""
        assert_can_transition(self.status, OrderStatus.CONFIRMED, TransitionActor.CAPTURE)
        if self.payment_reference and self.payment_reference != payment_reference:
            raise ValidationError({"payment_reference": ["Payment reference cannot be overwritten"]})

        with atomic_change(self):
            self.payment_status = PaymentStatus.PAID.value
            self.order_status = OrderStatus.CONFIRMED.value
            self.payment_reference = payment_reference
            self.payer_reference = payer_reference
            self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentCaptured(
                order_id=str(self.id),
                user_id=str(self.user_id),
                payment_reference=payment_reference,
                payer_reference=payer_reference,
                amount=self.total_amount,
            )
        )

    def record_payment_failure(self, payment_reference, reason):
        """Mark a declined capture. The order stays pending for another try."""
        if self.is_paid:
            raise ValidationError({"payment_status": ["A paid order cannot be marked failed"]})

        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentFailed(order_id=str(self.id), payment_reference=payment_reference, reason=reason))

    def mark_cart_cleared(self, lines_touched):
        self.cart_cleared = True
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(order_id=str(self.id), user_id=str(self.user_id), lines_touched=lines_touched))

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def change_status(self, target: OrderStatus, actor: TransitionActor = TransitionActor.ADMIN):
        """Move ``order_status`` along the transition table. Never touches payment fields."""
        current = self.status
        assert_can_transition(current, target, actor)

        self.order_status = target.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                actor=actor.value,
            )
        )
