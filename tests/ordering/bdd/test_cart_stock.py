"""BDD tests for stock checks on cart additions."""

from pytest_bdd import scenarios, then
from shared.errors import OutOfStock

scenarios("features/cart_stock.feature")


@then("the cart rejects the change as out of stock")
def rejected_out_of_stock(error):
    assert isinstance(error["exc"], OutOfStock)
