from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.menu_item import MenuItemModel


class MenuRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_item(self, item_id: int) -> MenuItemModel | None:
        return self.db.get(MenuItemModel, item_id)

    def create_item(self, item: MenuItemModel) -> MenuItemModel:
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def list_available(self) -> List[MenuItemModel]:
        stmt = select(MenuItemModel).where(MenuItemModel.available.is_(True)).order_by(MenuItemModel.id)
        return list(self.db.execute(stmt).scalars().all())

    def list_for_mom(self, mom_id: int) -> List[MenuItemModel]:
        stmt = select(MenuItemModel).where(MenuItemModel.mom_id == mom_id).order_by(MenuItemModel.id)
        return list(self.db.execute(stmt).scalars().all())

    def count_for_mom(self, mom_id: int) -> int:
        stmt = select(func.count(MenuItemModel.id)).where(MenuItemModel.mom_id == mom_id)
        return int(self.db.execute(stmt).scalar() or 0)

    def set_availability(self, item_id: int, mom_id: int, available: bool) -> int:
        #tylko wlasciciel pozycji, update set available where id and mom_id
        stmt = (
            update(MenuItemModel)
            .where(MenuItemModel.id == item_id, MenuItemModel.mom_id == mom_id)
            .values(available=available)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
