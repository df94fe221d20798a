"""Order creation: command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import AddressSnapshot, Order


@ordering.command(part_of="Order")
class PlaceOrder:
    order_id = Identifier()
    user_id = Identifier(required=True)
    lines = Text(required=True)  # JSON array of line dicts
    address = Text(required=True)  # JSON object
    payment_method = String(required=True, max_length=50)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = Order.create(
            user_id=command.user_id,
            lines_data=json.loads(command.lines),
            address=AddressSnapshot(**json.loads(command.address)),
            payment_method=command.payment_method,
            order_id=command.order_id,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
