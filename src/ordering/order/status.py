"""Order status state machine.

State Machine:
    pending → confirmed → inProcess → inShipping → delivered
    pending | confirmed | inProcess | inShipping → rejected

``pending → confirmed`` belongs to payment capture alone, and capture never
moves an order any further. Administrators drive everything after that.
``delivered`` and ``rejected`` are terminal.

Every order status write in the ledger is checked here first.
"""

from enum import Enum

from shared.errors import InvalidTransition


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROCESS = "inProcess"
    IN_SHIPPING = "inShipping"
    DELIVERED = "delivered"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[self]


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class TransitionActor(Enum):
    CAPTURE = "Capture"
    ADMIN = "Admin"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.REJECTED},
    OrderStatus.CONFIRMED: {OrderStatus.IN_PROCESS, OrderStatus.REJECTED},
    OrderStatus.IN_PROCESS: {OrderStatus.IN_SHIPPING, OrderStatus.REJECTED},
    OrderStatus.IN_SHIPPING: {OrderStatus.DELIVERED, OrderStatus.REJECTED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.REJECTED: set(),  # Terminal
}

_CAPTURE_TRANSITIONS = {(OrderStatus.PENDING, OrderStatus.CONFIRMED)}


def allowed_targets(current: OrderStatus, actor: TransitionActor) -> set[OrderStatus]:
    """Statuses ``actor`` may move an order to from ``current``."""
    targets = _VALID_TRANSITIONS[current]
    if actor == TransitionActor.CAPTURE:
        return {t for t in targets if (current, t) in _CAPTURE_TRANSITIONS}
    return {t for t in targets if (current, t) not in _CAPTURE_TRANSITIONS}


def assert_can_transition(current: OrderStatus, target: OrderStatus, actor: TransitionActor) -> None:
    """Raise InvalidTransition unless ``actor`` may move ``current`` to ``target``."""
    if target not in _VALID_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)
    if target not in allowed_targets(current, actor):
        if actor == TransitionActor.CAPTURE:
            raise InvalidTransition(current.value, target.value, "payment capture only confirms pending orders")
        raise InvalidTransition(current.value, target.value, "only payment capture may confirm an order")
