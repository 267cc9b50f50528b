from sqlalchemy import update
from sqlalchemy.orm import Session

from mummy_meals.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def set_sharing_location(self, user_id: int, enabled: bool) -> int:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(sharing_location=enabled)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def is_sharing_location(self, user_id: int) -> bool:
        user = self.db.get(UserModel, user_id, populate_existing=True)
        return bool(user and user.sharing_location)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
