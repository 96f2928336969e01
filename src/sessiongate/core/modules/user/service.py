from typing import Any, Protocol
from uuid import UUID, uuid4

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from sessiongate.core.core import Service
from sessiongate.core.modules.user.models import User, UserCreate, UserUpdate
from sessiongate.utils import now

logger = structlog.get_logger(__name__)


class UserStore(Protocol):
    """Profile storage used by the session service."""

    async def upsert_user(self, on_create: UserCreate, on_update: UserUpdate) -> User | None: ...

    async def get_user_by_id(self, user_id: UUID) -> User | None: ...


class UserService(Service):
    """Stores user profiles in MongoDB."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__()
        self._collection = database.get_collection("users")

    async def upsert_user(self, on_create: UserCreate, on_update: UserUpdate) -> User | None:
        """Create the user on first sight, otherwise refresh its mutable fields."""
        updates = on_update.model_dump()
        updates["updated_at"] = now()
        # $setOnInsert must not touch fields that $set writes
        insert_only = {key: value for key, value in on_create.model_dump().items() if key not in updates}
        insert_only["_id"] = uuid4()
        insert_only["created_at"] = updates["updated_at"]

        doc = await self._collection.find_one_and_update(
            {"email": on_create.email},
            {"$set": updates, "$setOnInsert": insert_only},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return User.model_validate(doc)

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        doc = await self._collection.find_one({"_id": user_id})
        if doc is None:
            return None
        return User.model_validate(doc)

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("email", 1)], unique=True)
        logger.debug("user_service_started")
