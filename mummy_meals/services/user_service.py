from sqlalchemy.orm import Session
from mummy_meals.data.models.user import UserModel
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import UserCreate, UserRead
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import Role
from mummy_meals.repos.user_repo import UserRepo


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        #uzytkownik przychodzi z identity providera, drugi raz nie tworzymy
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        user = UserModel(id=payload.id, name=payload.name, role=payload.role.value, phone=payload.phone)
        created = self.repo.create_user(user)
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)

    def load_session(self, user_id: int) -> AuthSession:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return AuthSession(user_id=user.id, role=Role(user.role))
