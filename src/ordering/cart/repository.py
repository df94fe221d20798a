"""Repository for the ShoppingCart aggregate."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class CartRepository:
    def for_user(self, user_id) -> ShoppingCart | None:
        return self._dao.query.filter(user_id=str(user_id)).all().first

    def claim(self, cart: ShoppingCart) -> bool:
        """Bump the cart's revision if nobody else has since it was read.

        Exactly one of several writers holding the same revision gets True;
        the others must re-read the cart and try again.
        """
        matched = self._dao.query.filter(id=str(cart.id), revision=cart.revision).update_all(
            revision=cart.revision + 1
        )
        if not matched:
            return False
        cart.revision += 1
        return True
