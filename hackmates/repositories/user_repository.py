from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError as SchemaError

from hackmates.constants import USERS_COLLECTION
from hackmates.database.document_store import DocumentStore, translate_errors
from hackmates.models.user import UserDocument
from hackmates.schemas.user import UserProfile


class UserRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._collection = store.db.get_collection(USERS_COLLECTION)

    async def create_user(self, email: str, hashed_password: str, full_name: Optional[str]) -> str:
        doc: UserDocument = {
            "email": email,
            "hashed_password": hashed_password,
            "display_name": full_name,
            "onboarding_completed": False,
        }
        return await self._store.create(USERS_COLLECTION, doc)

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        with translate_errors():
            user = await self._collection.find_one({"email": email})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        return await self._store.get_one(USERS_COLLECTION, user_id)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        doc = await self.get_user_by_id(user_id)
        if doc is None:
            return None
        try:
            return UserProfile.from_document(doc)
        except SchemaError as exc:
            logger.warning("malformed user record {}: {}", user_id, exc.errors())
            return None

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        if fields:
            await self._store.merge(USERS_COLLECTION, user_id, fields)
        return await self.get_profile(user_id)

    async def list_profiles(self, exclude_id: Optional[str] = None) -> List[UserProfile]:
        profiles: List[UserProfile] = []
        for doc in await self._store.query_many(USERS_COLLECTION):
            if doc["_id"] == exclude_id:
                continue
            try:
                profiles.append(UserProfile.from_document(doc))
            except SchemaError as exc:
                logger.warning("skipping malformed user record {}: {}", doc["_id"], exc.errors())
        return profiles

    async def ensure_indexes(self) -> None:
        await self._collection.create_index("email", unique=True)
