"""Order ledger: the Order repository.

Writers claim an order before changing it. The claim is a conditional
update of the order's revision keyed on the revision the writer read
(optimistic check-and-set): when two writers race, exactly one matches the
row, and the loser re-reads and reports what it finds instead of
overwriting. No global lock is taken.
"""

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import OrderStatus
from shared.errors import not_found


@ordering.repository(part_of=Order)
class OrderLedger:
    def get_order(self, order_id) -> Order:
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError:
            raise not_found("order", order_id) from None

    def get_for_user(self, order_id, user_id) -> Order:
        """Fetch an order owned by ``user_id``; other users' orders look absent."""
        order = self.get_order(order_id)
        if str(order.user_id) != str(user_id):
            raise not_found("order", order_id)
        return order

    def list_for_user(self, user_id) -> list[Order]:
        return self._dao.query.filter(user_id=str(user_id)).order_by("-created_at").all().items

    def list_all(self, status: OrderStatus | None = None) -> list[Order]:
        query = self._dao.query
        if status is not None:
            query = query.filter(order_status=status.value)
        return query.order_by("-created_at").all().items

    def claim(self, order: Order) -> bool:
        """Bump the order's revision unless another writer already has."""
        matched = self._dao.query.filter(id=str(order.id), revision=order.revision).update_all(
            revision=order.revision + 1
        )
        if not matched:
            return False
        order.revision += 1
        return True
