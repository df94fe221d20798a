"""Order fulfillment: administrative status changes after confirmation."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import OrderStatus, TransitionActor, assert_can_transition
from shared.errors import InvalidTransition


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    actor = String(choices=TransitionActor, default=TransitionActor.ADMIN.value)


@ordering.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        target = OrderStatus(command.status)
        actor = TransitionActor(command.actor)
        assert_can_transition(order.status, target, actor)

        if not repo.claim(order):
            # Lost the race: report against whatever status won
            latest = repo.get_order(command.order_id)
            raise InvalidTransition(latest.order_status, target.value, "order changed concurrently")

        order.change_status(target, actor)
        repo.add(order)
        return order.order_status
