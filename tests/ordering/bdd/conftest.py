"""Shared BDD fixtures and step definitions for the Ordering domain."""

from decimal import Decimal

import pytest
from ordering.cart.store import CartStore
from ordering.order.capture import PaymentCaptureHandler
from ordering.order.checkout import CheckoutOrchestrator
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import InvalidOperationError, ValidationError
from pytest_bdd import given, parsers, then, when

CUSTOMER = "user-1"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the error a When step ran into."""
    return {"exc": None}


@pytest.fixture()
def captures():
    """Capture results, in the order the captures were made."""
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" costs {price} with {stock:d} in stock'))
def product_in_catalogue(make_product, product_id, price, stock):
    make_product(product_id, price=price, stock=stock)


@given(parsers.cfparse('the customer has {quantity:d} of "{product_id}" in the cart'))
def customer_cart(product_id, quantity):
    CartStore().add_item(CUSTOMER, product_id, quantity)


@given("the customer has checked out", target_fixture="checkout")
def checked_out(address):
    return CheckoutOrchestrator().create_order(CUSTOMER, CartStore().lines(CUSTOMER), address, "paypal")


@given("the gateway declines captures")
def gateway_declines(fake_gateway):
    fake_gateway.configure(should_succeed=False, failure_reason="Card declined")


@given("the payment was captured")
def payment_was_captured(checkout, captures):
    captures.append(PaymentCaptureHandler().capture(checkout.order_id, checkout.approval_reference, "payer-001"))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the payment is captured")
@when("the payment is captured again")
def capture_payment(checkout, captures):
    captures.append(PaymentCaptureHandler().capture(checkout.order_id, checkout.approval_reference, "payer-001"))


@when(parsers.cfparse('the customer adds {quantity:d} of "{product_id}" to the cart'))
def add_to_cart(product_id, quantity, error):
    try:
        CartStore().add_item(CUSTOMER, product_id, quantity)
    except (ValidationError, InvalidOperationError) as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{order_status}" with payment "{payment_status}"'))
def order_state(checkout, order_status, payment_status):
    order = current_domain.repository_for(Order).get_order(checkout.order_id)
    assert order.order_status == order_status
    assert order.payment_status == payment_status


@then(parsers.cfparse("the order total is {total}"))
def order_total(checkout, total):
    assert current_domain.repository_for(Order).get_order(checkout.order_id).total == Decimal(total)


@then(parsers.cfparse('the cart holds {quantity:d} of "{product_id}"'))
def cart_holds(product_id, quantity):
    lines = {line.product_id: line.quantity for line in CartStore().lines(CUSTOMER)}
    assert lines.get(product_id) == quantity


@then(parsers.cfparse('the cart does not hold "{product_id}"'))
def cart_lacks(product_id):
    assert product_id not in {line.product_id for line in CartStore().lines(CUSTOMER)}


@then("the cart is empty")
def cart_is_empty():
    assert CartStore().lines(CUSTOMER) == []
