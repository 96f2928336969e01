from uuid import UUID

from sessiongate.core.core import Service
from sessiongate.core.modules.user.models import User, UserCreate, UserUpdate
from sessiongate.utils import now


class MemoryUserService(Service):
    """In-process profile store with the same upsert semantics as UserService."""

    def __init__(self) -> None:
        super().__init__()
        self._users: dict[UUID, User] = {}

    async def upsert_user(self, on_create: UserCreate, on_update: UserUpdate) -> User | None:
        existing = next((u for u in self._users.values() if u.email == on_create.email), None)
        if existing is None:
            user = User(**on_create.model_dump())
        else:
            user = existing.model_copy(update={**on_update.model_dump(), "updated_at": now()})
        self._users[user.id] = user
        return user

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

