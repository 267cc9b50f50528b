# mummy_meals/services/menu_service.py
from typing import List

from sqlalchemy.orm import Session

from mummy_meals.data.models.menu_item import MenuItemModel
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import MenuItemCreate
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import Role
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.menu_repo import MenuRepo
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


class MenuService:
    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = MenuRepo(db)
        self.feed = feed or get_change_feed()

    def create_item(self, session: AuthSession, payload: MenuItemCreate) -> MenuItemModel:
        session.require(Role.MOM)

        item = self.repo.create_item(MenuItemModel(mom_id=session.user_id, **payload.model_dump()))
        logger.info(f"Menu item {item.id} created by mom {session.user_id}")
        self.feed.publish_change(Topic.MENU_ITEMS, ChangeOp.INSERT, item)
        return item

    def set_availability(self, session: AuthSession, item_id: int, available: bool) -> MenuItemModel:
        session.require(Role.MOM)

        item = self.repo.get_item(item_id)
        if not item:
            raise NotFoundError("Menu item not found")
        if item.mom_id != session.user_id:
            raise PermissionError("No access to this menu item")

        try:
            self.repo.set_availability(item_id, session.user_id, available)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        item.available = available
        self.feed.publish_change(Topic.MENU_ITEMS, ChangeOp.UPDATE, item)
        return item

    def list_available(self) -> List[MenuItemModel]:
        return self.repo.list_available()

    def list_mine(self, session: AuthSession) -> List[MenuItemModel]:
        session.require(Role.MOM)
        return self.repo.list_for_mom(session.user_id)
