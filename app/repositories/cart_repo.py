# app/repositories/cart_repo.py
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.cart import Cart, CartLine


class CartRepository:
    """
    Data access layer for carts and cart_lines.

    NOTE:
      - No commits here; a quantity change touches the cart and a line in
        one transaction. The service is responsible for session.commit().
    """

    # ---- Carts ----

    def get_cart(self, session: Session, owner_id: int) -> Cart | None:
        return session.get(Cart, owner_id)

    def create_cart(self, session: Session, owner_id: int) -> Cart:
        cart = Cart(owner_id=owner_id)
        session.add(cart)
        session.flush()
        return cart

    def touch(self, session: Session, cart: Cart) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)

    def delete_cart(self, session: Session, cart: Cart) -> None:
        """Remove every line first, then the cart row itself."""
        for line in self.list_lines(session, cart.owner_id):
            session.delete(line)
        session.flush()
        session.delete(cart)
        session.flush()

    # ---- Lines ----

    def list_lines(self, session: Session, owner_id: int) -> list[CartLine]:
        stmt = (
            select(CartLine)
            .where(CartLine.owner_id == owner_id)
            .order_by(CartLine.product_id)
        )
        return session.exec(stmt).all()

    def get_line(self, session: Session, owner_id: int, product_id: str) -> CartLine | None:
        stmt = select(CartLine).where(
            CartLine.owner_id == owner_id, CartLine.product_id == product_id
        )
        return session.exec(stmt).first()

    def add_line(self, session: Session, owner_id: int, product_id: str, quantity: int) -> CartLine:
        line = CartLine(owner_id=owner_id, product_id=product_id, quantity=quantity)
        session.add(line)
        session.flush()
        return line

    def set_line_quantity(self, session: Session, line: CartLine, quantity: int) -> CartLine:
        line.quantity = quantity
        line.updated_at = datetime.now(timezone.utc)
        session.add(line)
        session.flush()
        return line

    def delete_line(self, session: Session, line: CartLine) -> None:
        session.delete(line)
        session.flush()
