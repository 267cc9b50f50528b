from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from mummy_meals.data.models.cart_item import CartItemModel
from mummy_meals.domain.errors import MenuItemUnavailableError, NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.cart_repo import CartRepo
from mummy_meals.repos.menu_repo import MenuRepo
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Koszyk klienta: jedna linia na (klient, pozycja menu)
    commands (add, set_quantity, clear) modyfikuja stan i publikuja cart_items
    query (get) tylko odczyt
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = CartRepo(db)
        self.menu_repo = MenuRepo(db)
        self.feed = feed or get_change_feed()

    #query - odczyt
    def get_cart(self, session: AuthSession) -> Dict[str, Any]:
        lines = self.repo.get_lines(session.user_id)

        items = []
        total = Decimal("0.00")
        for line in lines:
            price = Decimal(str(line.menu_item.price))
            line_total = price * line.quantity
            total += line_total
            items.append(
                {
                    "id": line.id,
                    "menu_item_id": line.menu_item_id,
                    "mom_id": line.menu_item.mom_id,
                    "title": line.menu_item.title,
                    "price": price,
                    "quantity": line.quantity,
                    "line_total": line_total,
                }
            )

        return {"customer_id": session.user_id, "items": items, "total": total}

    #commands
    def add_item(self, session: AuthSession, menu_item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        item = self.menu_repo.get_item(menu_item_id)
        if not item:
            raise NotFoundError("Menu item not found")
        if not item.available:
            raise MenuItemUnavailableError(menu_item_id)

        customer_id = session.user_id
        existing = self.repo.get_line_for_item(customer_id, menu_item_id)

        try:
            if existing:
                logger.info(
                    f"Item {menu_item_id} already in cart of {customer_id}, "
                    f"incrementing {existing.quantity} by {quantity}"
                )
                self.repo.increment_quantity(existing.id, quantity)
                op = ChangeOp.UPDATE
            else:
                self.repo.add_line(
                    CartItemModel(
                        customer_id=customer_id,
                        menu_item_id=menu_item_id,
                        quantity=quantity,
                    )
                )
                op = ChangeOp.INSERT
            self.repo.commit()
        except IntegrityError:
            #rownolegle add tej samej pary, unique constraint zlapal drugi insert
            self.repo.rollback()
            existing = self.repo.get_line_for_item(customer_id, menu_item_id)
            if existing is None:
                raise
            self.repo.increment_quantity(existing.id, quantity)
            self.repo.commit()
            op = ChangeOp.UPDATE
        except Exception:
            self.repo.rollback()
            raise

        line = self.repo.get_line_for_item(customer_id, menu_item_id)
        self.feed.publish_change(Topic.CART_ITEMS, op, line)

        return self.get_cart(session)

    def set_quantity(self, session: AuthSession, line_id: int, quantity: int) -> Dict[str, Any]:
        line = self.repo.get_line(line_id)

        if not line:
            raise NotFoundError("Cart item not found")

        if line.customer_id != session.user_id:
            raise PermissionError("No access to this cart")

        try:
            if quantity <= 0:
                logger.info(f"Removing cart line {line_id} of {session.user_id}")
                self.repo.delete_lines([line.id])
                op = ChangeOp.DELETE
            else:
                self.repo.set_quantity(line.id, quantity)
                op = ChangeOp.UPDATE
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if op == ChangeOp.UPDATE:
            line = self.repo.get_line(line_id)
        self.feed.publish_change(Topic.CART_ITEMS, op, line)

        return self.get_cart(session)

    def clear(self, session: AuthSession) -> Dict[str, Any]:
        lines = self.repo.get_lines(session.user_id)

        try:
            self.repo.delete_lines([line.id for line in lines])
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Cleared {len(lines)} cart lines of {session.user_id}")
        for line in lines:
            self.feed.publish_change(Topic.CART_ITEMS, ChangeOp.DELETE, line)

        return self.get_cart(session)
