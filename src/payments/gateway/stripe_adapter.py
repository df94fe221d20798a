"""Stripe payment gateway adapter.

Intents are created with ``capture_method="manual"``: the customer confirms
the PaymentIntent client-side, and the funds only move when the storefront
calls capture. The PaymentIntent id is the approval reference, and the
order id travels in the intent's metadata.
"""

from decimal import Decimal

import stripe
import structlog

from payments.gateway.port import CaptureResult, IntentResult, PaymentGateway

logger = structlog.get_logger(__name__)

CURRENCY = "usd"


def _to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


def _from_minor_units(amount) -> Decimal | None:
    if amount is None:
        return None
    return (Decimal(amount) / 100).quantize(Decimal("0.01"))


def _succeeded(intent) -> CaptureResult:
    metadata = intent.metadata or {}
    amount = intent.amount_received or intent.amount
    return CaptureResult(
        success=True,
        gateway_transaction_id=intent.latest_charge,
        gateway_status=intent.status,
        amount=_from_minor_units(amount),
        order_id=metadata.get("order_id"),
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def create_intent(self, amount: Decimal, return_context: dict) -> IntentResult:
        try:
            intent = stripe.PaymentIntent.create(
                amount=_to_minor_units(amount),
                currency=CURRENCY,
                capture_method="manual",
                metadata={key: str(value) for key, value in return_context.items()},
                api_key=self.api_key,
            )
        except (stripe.CardError, stripe.InvalidRequestError) as exc:
            return IntentResult(success=False, gateway_status="failed", failure_reason=exc.user_message or str(exc))

        return IntentResult(success=True, approval_reference=intent.id, gateway_status=intent.status)

    def capture_intent(self, payment_reference: str, payer_reference: str) -> CaptureResult:
        # Stripe identifies the payer through the intent itself.
        try:
            intent = stripe.PaymentIntent.capture(payment_reference, api_key=self.api_key)
        except stripe.CardError as exc:
            return CaptureResult(success=False, gateway_status="failed", failure_reason=exc.user_message or str(exc))
        except stripe.InvalidRequestError as exc:
            return self._after_rejected_capture(payment_reference, exc)

        if intent.status != "succeeded":
            return CaptureResult(
                success=False,
                gateway_status=intent.status,
                failure_reason=f"Intent is {intent.status}",
            )
        return _succeeded(intent)

    def _after_rejected_capture(self, payment_reference: str, exc) -> CaptureResult:
        """Stripe refuses to capture an intent twice; a retried capture reads it back instead."""
        failure = CaptureResult(success=False, gateway_status="failed", failure_reason=exc.user_message or str(exc))
        try:
            intent = stripe.PaymentIntent.retrieve(payment_reference, api_key=self.api_key)
        except stripe.InvalidRequestError:
            return failure

        if intent.status != "succeeded":
            return failure
        logger.info("payment.capture_already_settled", payment_reference=payment_reference)
        return _succeeded(intent)
