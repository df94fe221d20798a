"""Tests for PaymentCaptureHandler: idempotent capture, failures and cart clearing."""

import json
from decimal import Decimal
from unittest.mock import patch

import pytest
from ordering.cart.cart import CartLine
from ordering.cart.repository import CartRepository
from ordering.cart.store import CartStore
from ordering.order.capture import CaptureOutcome, PaymentCaptureHandler
from ordering.order.checkout import CheckoutOrchestrator
from ordering.order.fulfillment import ChangeOrderStatus
from ordering.order.order import Order
from ordering.order.payment import RecordPaymentCaptured
from ordering.order.status import OrderStatus, PaymentStatus
from ordering.projections.order_timeline import timeline_for
from payments.gateway.port import CaptureResult, PaymentGateway
from payments.gateway.timeout import TimeoutGateway
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.errors import GatewayUnavailable, InvalidTransition


@pytest.fixture()
def placed(make_product, address):
    """User-1 has 2 x prod-A (50.00) in the cart and a pending order for them."""
    make_product("prod-A", price="50.00", stock=10)
    carts = CartStore()
    carts.add_item("user-1", "prod-A", 2)
    return CheckoutOrchestrator().create_order("user-1", carts.lines("user-1"), address, "paypal")


@pytest.fixture()
def handler():
    return PaymentCaptureHandler()


@pytest.fixture()
def ledger():
    return current_domain.repository_for(Order)


def _capture(handler, placed, **overrides):
    return handler.capture(
        overrides.get("order_id", placed.order_id),
        overrides.get("payment_reference", placed.approval_reference),
        overrides.get("payer_reference", "payer-001"),
        user_id=overrides.get("user_id"),
    )


def _timeline_count(order_id, event_type):
    return len(timeline_for(order_id, event_type))


class TestSuccessfulCapture:
    def test_confirms_and_pays(self, handler, ledger, placed):
        result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.CAPTURED
        assert result.succeeded
        order = ledger.get_order(placed.order_id)
        assert order.total == Decimal("100.00")
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment == PaymentStatus.PAID
        assert order.payment_reference == placed.approval_reference
        assert order.payer_reference == "payer-001"
        assert order.cart_cleared is True

    def test_purchased_items_leave_cart(self, handler, placed):
        _capture(handler, placed)
        assert CartStore().lines("user-1") == []

    def test_items_added_after_checkout_stay(self, handler, placed, make_product):
        make_product("prod-B", stock=5)
        carts = CartStore()
        carts.add_item("user-1", "prod-A", 1)
        carts.add_item("user-1", "prod-B", 1)

        _capture(handler, placed)

        assert carts.lines("user-1") == [CartLine("prod-A", 1), CartLine("prod-B", 1)]

    def test_records_capture_once(self, handler, placed):
        _capture(handler, placed)

        [captured] = timeline_for(placed.order_id, "PaymentCaptured")
        assert _timeline_count(placed.order_id, "CartCleared") == 1
        assert json.loads(captured.payload)["amount"] == 100.0

    def test_owner_scoped_capture(self, handler, placed):
        assert _capture(handler, placed, user_id="user-1").outcome == CaptureOutcome.CAPTURED

    def test_other_user_cannot_capture(self, handler, ledger, placed):
        with pytest.raises(ObjectNotFoundError):
            _capture(handler, placed, user_id="user-2")
        assert ledger.get_order(placed.order_id).payment == PaymentStatus.PENDING


class TestRepeatedCapture:
    def test_second_capture_is_a_no_op(self, handler, ledger, placed, fake_gateway):
        _capture(handler, placed)
        gateway_calls = len(fake_gateway.calls)

        again = _capture(handler, placed)

        assert again.outcome == CaptureOutcome.ALREADY_CAPTURED
        assert again.succeeded
        assert again.order_status == OrderStatus.CONFIRMED.value
        assert len(fake_gateway.calls) == gateway_calls
        assert ledger.get_order(placed.order_id).total == Decimal("100.00")
        assert _timeline_count(placed.order_id, "PaymentCaptured") == 1
        assert _timeline_count(placed.order_id, "CartCleared") == 1

    def test_second_capture_does_not_clear_new_items(self, handler, placed):
        _capture(handler, placed)
        carts = CartStore()
        carts.add_item("user-1", "prod-A", 2)

        _capture(handler, placed)

        assert carts.lines("user-1") == [CartLine("prod-A", 2)]

    def test_different_reference_does_not_overwrite(self, handler, ledger, placed):
        _capture(handler, placed)
        again = _capture(handler, placed, payment_reference="someone-else", payer_reference="payer-x")

        assert again.outcome == CaptureOutcome.ALREADY_CAPTURED
        order = ledger.get_order(placed.order_id)
        assert order.payment_reference == placed.approval_reference
        assert order.payer_reference == "payer-001"

    def test_unfinished_cart_clear_is_completed_on_retry(self, handler, ledger, placed):
        # An earlier capture confirmed the order but stopped before clearing the cart
        current_domain.process(
            RecordPaymentCaptured(
                order_id=placed.order_id,
                payment_reference=placed.approval_reference,
                payer_reference="payer-001",
            ),
            asynchronous=False,
        )
        assert CartStore().lines("user-1") == [CartLine("prod-A", 2)]

        result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.ALREADY_CAPTURED
        assert CartStore().lines("user-1") == []
        assert ledger.get_order(placed.order_id).cart_cleared is True

    def test_busy_cart_defers_clear_to_next_capture(self, handler, ledger, placed):
        with patch.object(CartRepository, "claim", return_value=False):
            result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.CAPTURED
        order = ledger.get_order(placed.order_id)
        assert order.is_paid
        assert order.cart_cleared is False
        assert CartStore().lines("user-1") == [CartLine("prod-A", 2)]

        again = _capture(handler, placed)

        assert again.outcome == CaptureOutcome.ALREADY_CAPTURED
        assert CartStore().lines("user-1") == []
        assert _timeline_count(placed.order_id, "CartCleared") == 1


class RacingGateway(PaymentGateway):
    """Lets a second capture finish while the first is waiting on the gateway."""

    def __init__(self, gateway, rival):
        self.gateway = gateway
        self.rival = rival

    def create_intent(self, amount, return_context):
        return self.gateway.create_intent(amount, return_context)

    def capture_intent(self, payment_reference, payer_reference):
        self.rival()
        return self.gateway.capture_intent(payment_reference, payer_reference)


class TestConcurrentCapture:
    def test_loser_reports_already_captured(self, placed, fake_gateway):
        def rival():
            result = PaymentCaptureHandler(gateway=fake_gateway).capture(
                placed.order_id, placed.approval_reference, "payer-001"
            )
            assert result.outcome == CaptureOutcome.CAPTURED

        handler = PaymentCaptureHandler(gateway=RacingGateway(fake_gateway, rival))
        result = handler.capture(placed.order_id, placed.approval_reference, "payer-001")

        assert result.outcome == CaptureOutcome.ALREADY_CAPTURED
        assert _timeline_count(placed.order_id, "PaymentCaptured") == 1
        assert _timeline_count(placed.order_id, "CartCleared") == 1
        assert CartStore().lines("user-1") == []


class TestDeclinedCapture:
    def test_marks_payment_failed_and_keeps_cart(self, handler, ledger, placed, fake_gateway):
        fake_gateway.configure(should_succeed=False, failure_reason="Insufficient funds")

        result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.FAILED
        assert not result.succeeded
        assert result.failure_reason == "Insufficient funds"
        order = ledger.get_order(placed.order_id)
        assert order.payment == PaymentStatus.FAILED
        assert order.status == OrderStatus.PENDING
        assert order.payment_reference is None
        assert CartStore().lines("user-1") == [CartLine("prod-A", 2)]

    def test_retry_after_decline_succeeds(self, handler, ledger, placed, fake_gateway):
        fake_gateway.configure(should_succeed=False)
        _capture(handler, placed)

        fake_gateway.configure(should_succeed=True)
        result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.CAPTURED
        order = ledger.get_order(placed.order_id)
        assert order.payment == PaymentStatus.PAID
        assert order.status == OrderStatus.CONFIRMED

    def test_unknown_reference_is_declined(self, handler, ledger, placed):
        result = _capture(handler, placed, payment_reference="fake_appr_forged")

        assert result.outcome == CaptureOutcome.FAILED
        assert ledger.get_order(placed.order_id).payment == PaymentStatus.FAILED


class FixedVerdictGateway(PaymentGateway):
    """Approves every capture with a preset amount and order."""

    def __init__(self, amount, order_id):
        self.amount = amount
        self.order_id = order_id

    def create_intent(self, amount, return_context):
        raise NotImplementedError

    def capture_intent(self, payment_reference, payer_reference):
        return CaptureResult(
            success=True,
            gateway_transaction_id="txn-fixed",
            gateway_status="completed",
            amount=self.amount,
            order_id=self.order_id,
        )


class TestForeignVerdict:
    def test_reference_from_a_cheaper_order_is_rejected(self, handler, ledger, make_product, address, placed):
        make_product("prod-cheap", price="1.00", stock=10)
        cheap = CheckoutOrchestrator().create_order("user-1", [CartLine("prod-cheap", 1)], address, "paypal")

        result = _capture(handler, placed, payment_reference=cheap.approval_reference)

        assert result.outcome == CaptureOutcome.FAILED
        assert result.failure_reason == "Payment reference was issued for a different order"
        order = ledger.get_order(placed.order_id)
        assert order.payment == PaymentStatus.FAILED
        assert order.status == OrderStatus.PENDING
        assert not order.is_paid
        assert CartStore().lines("user-1") == [CartLine("prod-A", 2)]
        assert _timeline_count(placed.order_id, "PaymentCaptured") == 0

    def test_amount_that_differs_from_total_is_rejected(self, ledger, placed):
        handler = PaymentCaptureHandler(gateway=FixedVerdictGateway(Decimal("1.00"), placed.order_id))

        result = _capture(handler, placed)

        assert result.outcome == CaptureOutcome.FAILED
        assert result.failure_reason == "Captured amount 1.00 does not match order total 100.00"
        assert ledger.get_order(placed.order_id).payment == PaymentStatus.FAILED

    def test_verdict_without_order_is_rejected(self, ledger, placed):
        handler = PaymentCaptureHandler(gateway=FixedVerdictGateway(Decimal("100.00"), None))

        assert _capture(handler, placed).outcome == CaptureOutcome.FAILED
        assert not ledger.get_order(placed.order_id).is_paid

    def test_matching_verdict_is_accepted(self, ledger, placed):
        handler = PaymentCaptureHandler(gateway=FixedVerdictGateway(Decimal("100.00"), placed.order_id))

        assert _capture(handler, placed).outcome == CaptureOutcome.CAPTURED
        assert ledger.get_order(placed.order_id).is_paid


class TestGatewayUnavailable:
    def test_unreachable_gateway_changes_nothing(self, handler, ledger, placed, fake_gateway):
        fake_gateway.configure(should_succeed=True, unavailable=True)

        with pytest.raises(GatewayUnavailable):
            _capture(handler, placed)

        order = ledger.get_order(placed.order_id)
        assert order.payment == PaymentStatus.PENDING
        assert order.status == OrderStatus.PENDING
        assert CartStore().lines("user-1") == [CartLine("prod-A", 2)]

    @pytest.mark.slow
    def test_timeout_is_not_success(self, ledger, placed, fake_gateway):
        fake_gateway.configure(should_succeed=True, delay=0.5)
        handler = PaymentCaptureHandler(gateway=TimeoutGateway(fake_gateway, timeout=0.05))

        with pytest.raises(GatewayUnavailable):
            _capture(handler, placed)

        assert ledger.get_order(placed.order_id).payment == PaymentStatus.PENDING


class TestCaptureGuards:
    def test_rejected_order_is_not_sent_to_gateway(self, handler, ledger, placed, fake_gateway):
        current_domain.process(ChangeOrderStatus(order_id=placed.order_id, status="rejected"), asynchronous=False)
        calls = len(fake_gateway.calls)

        with pytest.raises(InvalidTransition):
            _capture(handler, placed)

        assert len(fake_gateway.calls) == calls
        assert ledger.get_order(placed.order_id).payment == PaymentStatus.PENDING

    @pytest.mark.parametrize("field", ["payment_reference", "payer_reference"])
    def test_references_required(self, handler, placed, field):
        with pytest.raises(ValidationError):
            _capture(handler, placed, **{field: ""})

    def test_unknown_order(self, handler):
        with pytest.raises(ObjectNotFoundError):
            handler.capture("no-such-order", "ref", "payer")
