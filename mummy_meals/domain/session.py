# mummy_meals/domain/session.py
from dataclasses import dataclass

from mummy_meals.domain.status import Role


@dataclass(frozen=True)
class AuthSession:
    """Kontekst zalogowanego uzytkownika przekazywany jawnie do serwisow."""

    user_id: int
    role: Role

    def require(self, role: Role) -> None:
        if self.role != role:
            raise PermissionError(f"Operation requires role {role.value}")
