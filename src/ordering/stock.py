"""Stock validation against at-call-time catalogue snapshots."""

from protean.exceptions import ValidationError

from ordering.catalogue import CatalogueService, ProductSnapshot
from shared.errors import OutOfStock, not_found


def require_positive_quantity(quantity) -> None:
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a positive integer"]})


def check_quantity(product_id: str, product: ProductSnapshot | None, quantity: int) -> ProductSnapshot:
    """Return the product if ``quantity`` units of it can be had, raise otherwise."""
    if product is None:
        raise not_found("product", product_id)
    if quantity > product.stock:
        raise OutOfStock(product_id, quantity, product.stock)
    return product


class StockValidator:
    def __init__(self, catalogue: CatalogueService) -> None:
        self.catalogue = catalogue

    def check(self, product_id: str, quantity: int) -> ProductSnapshot:
        require_positive_quantity(quantity)
        return check_quantity(product_id, self.catalogue.get_product(product_id), quantity)
