"""FastAPI routes for the Ordering domain: carts, orders and order admin."""

import json

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from identity.principal import Principal, current_principal, require_admin
from ordering.api.schemas import (
    AddToCartRequest,
    CapturePaymentRequest,
    CaptureResponse,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderAddressResponse,
    OrderEventResponse,
    OrderLineResponse,
    OrderResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.cart import CartView
from ordering.cart.store import CartStore
from ordering.order.capture import PaymentCaptureHandler
from ordering.order.checkout import CheckoutOrchestrator, CheckoutResult
from ordering.order.fulfillment import ChangeOrderStatus
from ordering.order.order import AddressSnapshot, Order
from ordering.order.status import OrderStatus, TransitionActor
from ordering.projections.order_timeline import timeline_for
from shared.money import to_money


def _cart_response(view: CartView) -> CartResponse:
    return CartResponse(
        cart_id=view.cart_id,
        user_id=view.user_id,
        items=[
            CartItemResponse(
                product_id=item.product_id,
                quantity=item.quantity,
                title=item.title,
                image=item.image,
                unit_price=item.unit_price,
                line_total=item.line_total,
                available=item.available,
            )
            for item in view.items
        ],
        subtotal=view.subtotal,
    )


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        user_id=str(order.user_id),
        lines=[
            OrderLineResponse(
                product_id=str(line.product_id),
                title=line.title,
                image=line.image,
                unit_price=to_money(line.unit_price),
                quantity=line.quantity,
            )
            for line in order.ordered_lines
        ],
        address=OrderAddressResponse(
            address_line=order.address.address_line,
            city=order.address.city,
            postal_code=order.address.postal_code,
            phone=order.address.phone,
            notes=order.address.notes,
        ),
        order_status=order.order_status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        payment_reference=order.payment_reference,
        payer_reference=order.payer_reference,
        total_amount=order.total,
        created_at=order.created_at,
    )


def _checkout_response(result: CheckoutResult) -> CheckoutResponse:
    return CheckoutResponse(
        order_id=result.order_id,
        total_amount=result.total_amount,
        approval_reference=result.approval_reference,
    )


def _visible_order(order_id: str, principal: Principal) -> Order:
    """Admins see any order; customers only their own."""
    ledger = current_domain.repository_for(Order)
    if principal.is_admin:
        return ledger.get_order(order_id)
    return ledger.get_for_user(order_id, principal.user_id)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(principal: Principal = Depends(current_principal)) -> CartResponse:
    """The caller's cart, enriched with live catalogue data."""
    return _cart_response(CartStore().get_cart(principal.user_id))


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(
    body: AddToCartRequest,
    principal: Principal = Depends(current_principal),
) -> CartResponse:
    store = CartStore()
    store.add_item(principal.user_id, body.product_id, body.quantity)
    return _cart_response(store.get_cart(principal.user_id))


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    body: UpdateCartQuantityRequest,
    principal: Principal = Depends(current_principal),
) -> CartResponse:
    store = CartStore()
    store.update_quantity(principal.user_id, product_id, body.quantity)
    return _cart_response(store.get_cart(principal.user_id))


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    principal: Principal = Depends(current_principal),
) -> CartResponse:
    store = CartStore()
    store.remove_item(principal.user_id, product_id)
    return _cart_response(store.get_cart(principal.user_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    principal: Principal = Depends(current_principal),
) -> CheckoutResponse:
    """Place an order for the caller's current cart and open a payment intent."""
    lines = CartStore().lines(principal.user_id)
    result = CheckoutOrchestrator().create_order(
        user_id=principal.user_id,
        cart_lines=lines,
        address=AddressSnapshot(**body.address.model_dump()),
        payment_method=body.payment_method,
        expected_total=body.expected_total,
    )
    return _checkout_response(result)


@order_router.post("/{order_id}/payment-intent", response_model=CheckoutResponse)
async def resume_payment(
    order_id: str,
    principal: Principal = Depends(current_principal),
) -> CheckoutResponse:
    """Open a new payment intent for an unpaid pending order."""
    return _checkout_response(CheckoutOrchestrator().resume_payment(order_id, principal.user_id))


@order_router.post("/{order_id}/capture", response_model=CaptureResponse)
async def capture_payment(
    order_id: str,
    body: CapturePaymentRequest,
    principal: Principal = Depends(current_principal),
):
    """Finalize the payment after the customer approved it at the gateway.

    Responds 200 for a fresh or repeated capture and 402 when the gateway
    declines or the reference does not settle this order.
    """
    result = PaymentCaptureHandler().capture(
        order_id,
        body.payment_reference,
        body.payer_reference,
        user_id=None if principal.is_admin else principal.user_id,
    )
    response = CaptureResponse(
        order_id=result.order_id,
        outcome=result.outcome.value,
        order_status=result.order_status,
        payment_status=result.payment_status,
        failure_reason=result.failure_reason,
    )
    if not result.succeeded:
        return JSONResponse(status_code=402, content=response.model_dump(mode="json"))
    return response


@order_router.get("", response_model=list[OrderResponse])
async def list_my_orders(principal: Principal = Depends(current_principal)) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).list_for_user(principal.user_id)
    return [_order_response(order) for order in orders]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, principal: Principal = Depends(current_principal)) -> OrderResponse:
    return _order_response(_visible_order(order_id, principal))


@order_router.get("/{order_id}/timeline", response_model=list[OrderEventResponse])
async def order_timeline(order_id: str, principal: Principal = Depends(current_principal)) -> list[OrderEventResponse]:
    order = _visible_order(order_id, principal)
    return [
        OrderEventResponse(
            event_type=entry.event_type,
            payload=json.loads(entry.payload) if entry.payload else {},
            occurred_at=entry.occurred_at,
        )
        for entry in timeline_for(order.id)
    ]


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=list[OrderResponse])
async def list_orders(
    status: OrderStatus | None = None,
    _: Principal = Depends(require_admin),
) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).list_all(status)
    return [_order_response(order) for order in orders]


@admin_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    _: Principal = Depends(require_admin),
) -> OrderResponse:
    """Move an order along the fulfillment lifecycle. Payment fields are never touched."""
    current_domain.process(
        ChangeOrderStatus(
            order_id=order_id,
            status=body.order_status.value,
            actor=TransitionActor.ADMIN.value,
        ),
        asynchronous=False,
    )
    return _order_response(current_domain.repository_for(Order).get_order(order_id))
