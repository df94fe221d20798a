"""What checkout and capture need from a payment provider.

Ordering code only ever sees this interface; FakeGateway and StripeGateway
are interchangeable behind it.

The gateway is reached through exactly two operations:

- ``create_intent``: ask the gateway to prepare a payment for an amount; the
  returned approval reference is what the customer approves and what is
  later presented back for capture.
- ``capture_intent``: confirm with the gateway that the funds were actually
  transferred. A successful result reports the captured amount and the order
  the intent was opened for, so the caller can check both against its own
  order before trusting the capture.

Adapters report declines as result values. Network problems and timeouts
are raised as exceptions and turned into ``GatewayUnavailable`` by
``TimeoutGateway``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class IntentResult:
    """Result of a create-intent request."""

    success: bool
    approval_reference: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class CaptureResult:
    """Result of a capture request."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None
    # What the gateway says was captured, and for which order
    amount: Decimal | None = None
    order_id: str | None = None


class PaymentGateway(ABC):
    """A payment provider that authorizes first and moves funds on capture."""

    @abstractmethod
    def create_intent(self, amount: Decimal, return_context: dict) -> IntentResult:
        """Create a payment intent for ``amount``."""
        ...

    @abstractmethod
    def capture_intent(self, payment_reference: str, payer_reference: str) -> CaptureResult:
        """Capture a previously approved intent."""
        ...
