"""In-process payment gateway for development and tests.

Nothing leaves the process. Behavior is switched at runtime, from tests or
through POST /payments/gateway/configure: approve, decline with a reason,
stall for ``delay`` seconds, or refuse connections. Every call is appended
to ``calls``.

Captures are only accepted for approval references this gateway issued, and
report the amount and order the intent was opened for.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from payments.gateway.port import CaptureResult, IntentResult, PaymentGateway


@dataclass(frozen=True)
class FakeIntent:
    amount: Decimal
    order_id: str | None


class FakeGateway(PaymentGateway):
    """Issues fake_appr_ references and captures only those."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.delay: float = 0.0
        self.unavailable: bool = False
        self.intents: dict[str, FakeIntent] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Payment declined",
        delay: float = 0.0,
        unavailable: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay = delay
        self.unavailable = unavailable

    def _simulate_network(self) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.unavailable:
            raise ConnectionError("Fake gateway is unreachable")

    def create_intent(self, amount: Decimal, return_context: dict) -> IntentResult:
        self.calls.append({"method": "create_intent", "amount": amount, "return_context": return_context})
        self._simulate_network()

        if not self.should_succeed:
            return IntentResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)

        reference = f"fake_appr_{uuid4().hex[:12]}"
        order_id = return_context.get("order_id")
        self.intents[reference] = FakeIntent(
            amount=Decimal(amount),
            order_id=str(order_id) if order_id is not None else None,
        )
        return IntentResult(success=True, approval_reference=reference, gateway_status="created")

    def capture_intent(self, payment_reference: str, payer_reference: str) -> CaptureResult:
        self.calls.append(
            {
                "method": "capture_intent",
                "payment_reference": payment_reference,
                "payer_reference": payer_reference,
            }
        )
        self._simulate_network()

        intent = self.intents.get(payment_reference)
        if intent is None:
            return CaptureResult(success=False, gateway_status="failed", failure_reason="Unknown payment reference")
        if not self.should_succeed:
            return CaptureResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)
        return CaptureResult(
            success=True,
            gateway_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
            gateway_status="completed",
            amount=intent.amount,
            order_id=intent.order_id,
        )
