"""Catalogue read model as seen by the ordering context.

The catalogue itself (search, filters, media, admin forms) lives elsewhere;
ordering only needs an at-call-time lookup of price, sale price and stock.
Nothing here is cached: checkout must never see a stale stock figure.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from shared.money import to_money


@ordering.projection
class ProductRecord:
    product_id = Identifier(identifier=True, required=True)
    title = String(required=True, max_length=255)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)


@dataclass(frozen=True)
class ProductSnapshot:
    """Product values as they were at the moment of the lookup."""

    product_id: str
    title: str
    image: str | None
    price: Decimal
    sale_price: Decimal | None
    stock: int

    @property
    def effective_price(self) -> Decimal:
        """Sale price when one is set and positive, list price otherwise."""
        if self.sale_price is not None and self.sale_price > 0:
            return self.sale_price
        return self.price


class CatalogueService(Protocol):
    def get_product(self, product_id: str) -> ProductSnapshot | None: ...


class DomainCatalogue:
    """Reads product records through the ordering domain's repositories."""

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        try:
            record = current_domain.repository_for(ProductRecord).get(str(product_id))
        except ObjectNotFoundError:
            return None
        return ProductSnapshot(
            product_id=str(record.product_id),
            title=record.title,
            image=record.image,
            price=to_money(record.price),
            sale_price=to_money(record.sale_price) if record.sale_price is not None else None,
            stock=record.stock or 0,
        )


def save_product(product_id, title, price, stock=0, sale_price=None, image=None) -> ProductRecord:
    """Insert or replace a product record."""
    repo = current_domain.repository_for(ProductRecord)
    values = {
        "title": title,
        "image": image,
        "price": float(price),
        "sale_price": float(sale_price) if sale_price is not None else None,
        "stock": int(stock),
    }
    try:
        record = repo.get(str(product_id))
    except ObjectNotFoundError:
        record = ProductRecord(product_id=str(product_id), **values)
    else:
        for field_name, value in values.items():
            setattr(record, field_name, value)
    repo.add(record)
    return record
