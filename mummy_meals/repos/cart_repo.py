# mummy_meals/repos/cart_repo.py
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_line(self, line_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, line_id, populate_existing=True)

    def get_line_for_item(self, customer_id: int, menu_item_id: int) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.customer_id == customer_id,
            CartItemModel.menu_item_id == menu_item_id,
        )
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def get_lines(self, customer_id: int, for_update: bool = False) -> List[CartItemModel]:
        stmt = (
            select(CartItemModel)
            .where(CartItemModel.customer_id == customer_id)
            .order_by(CartItemModel.id)
        )
        if for_update:
            #select ... for update of cart_items (menu_items dolaczone joinem nie sa blokowane)
            stmt = stmt.with_for_update(of=CartItemModel)
        return list(self.db.execute(stmt.execution_options(populate_existing=True)).unique().scalars().all())

    def add_line(self, line: CartItemModel) -> CartItemModel:
        self.db.add(line)
        self.db.flush()
        return line

    def increment_quantity(self, line_id: int, quantity: int) -> int:
        #atomowo w bazie: quantity = quantity + :q
        stmt = (
            update(CartItemModel)
            .where(CartItemModel.id == line_id)
            .values(quantity=CartItemModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def set_quantity(self, line_id: int, quantity: int) -> int:
        stmt = (
            update(CartItemModel)
            .where(CartItemModel.id == line_id)
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def delete_lines(self, line_ids: List[int]) -> int:
        if not line_ids:
            return 0
        #bez synchronize_session=False: usuniete linie znikaja tez z sesji,
        #inaczej nowa linia z tym samym id koliduje w identity map
        stmt = delete(CartItemModel).where(CartItemModel.id.in_(line_ids))
        return self.db.execute(stmt).rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
