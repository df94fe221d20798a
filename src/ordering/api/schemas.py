"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal models. Request bodies reject unknown fields before any business
logic runs.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ordering.order.status import OrderStatus


class RequestSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(RequestSchema):
    address_line: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    phone: str = Field(min_length=1, max_length=30)
    notes: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(RequestSchema):
    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1, default=1, strict=True)


class UpdateCartQuantityRequest(RequestSchema):
    quantity: int = Field(ge=1, strict=True)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(RequestSchema):
    address: AddressSchema
    payment_method: str = Field(min_length=1, max_length=50)
    expected_total: Decimal | None = Field(default=None, ge=0)

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {
                    "address": {
                        "address_line": "123 Main St",
                        "city": "Springfield",
                        "postal_code": "62701",
                        "phone": "+1-555-0100",
                        "notes": "Leave at the door",
                    },
                    "payment_method": "paypal",
                    "expected_total": "100.00",
                }
            ]
        },
    )


class CapturePaymentRequest(RequestSchema):
    payment_reference: str = Field(min_length=1, max_length=255)
    payer_reference: str = Field(min_length=1, max_length=255)


class UpdateOrderStatusRequest(RequestSchema):
    order_status: OrderStatus


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    product_id: str
    quantity: int
    title: str | None
    image: str | None
    unit_price: Decimal | None
    line_total: Decimal | None
    available: bool


class CartResponse(BaseModel):
    cart_id: str | None
    user_id: str
    items: list[CartItemResponse]
    subtotal: Decimal


class CheckoutResponse(BaseModel):
    order_id: str
    total_amount: Decimal
    approval_reference: str


class CaptureResponse(BaseModel):
    order_id: str
    outcome: str
    order_status: str
    payment_status: str
    failure_reason: str | None = None


class OrderLineResponse(BaseModel):
    product_id: str
    title: str
    image: str | None
    unit_price: Decimal
    quantity: int


class OrderAddressResponse(BaseModel):
    address_line: str
    city: str
    postal_code: str
    phone: str
    notes: str | None = None


class OrderResponse(BaseModel):
    id: str
    user_id: str
    lines: list[OrderLineResponse]
    address: OrderAddressResponse
    order_status: str
    payment_status: str
    payment_method: str
    payment_reference: str | None
    payer_reference: str | None
    total_amount: Decimal
    created_at: datetime


class OrderEventResponse(BaseModel):
    event_type: str
    payload: dict
    occurred_at: datetime
