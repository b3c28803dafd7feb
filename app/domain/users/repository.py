"""User repository - Document store operations for user profiles"""

from typing import Any, Optional

from ...store import ArrayRemove, ArrayUnion, DocumentStore, Query
from .schemas import UserProfile

USERS_COLLECTION = "user"


class UserRepository:
    """Repository for user profile documents"""

    @staticmethod
    async def get_user(store: DocumentStore, uid: str) -> Optional[UserProfile]:
        doc = await store.get(USERS_COLLECTION, uid)
        return UserProfile.from_document(doc) if doc else None

    @staticmethod
    async def get_raw(store: DocumentStore, uid: str) -> Optional[dict[str, Any]]:
        doc = await store.get(USERS_COLLECTION, uid)
        return doc.data if doc else None

    @staticmethod
    async def save_user(store: DocumentStore, uid: str, data: dict[str, Any], merge: bool = True) -> None:
        await store.set(USERS_COLLECTION, uid, data, merge=merge)

    @staticmethod
    async def update_user(store: DocumentStore, uid: str, **updates) -> None:
        await store.update(USERS_COLLECTION, uid, updates)

    @staticmethod
    async def get_users_by_role(store: DocumentStore, role: str) -> list[UserProfile]:
        docs = await store.query(Query(USERS_COLLECTION).where("role", "==", role))
        return [UserProfile.from_document(d) for d in docs]

    @staticmethod
    async def count_by_role(store: DocumentStore, role: str) -> int:
        return await store.count(Query(USERS_COLLECTION).where("role", "==", role))

    @staticmethod
    async def add_to_array(store: DocumentStore, uid: str, field: str, value: Any, **updates) -> None:
        await store.update(USERS_COLLECTION, uid, {field: ArrayUnion((value,)), **updates})

    @staticmethod
    async def remove_from_array(
        store: DocumentStore, uid: str, field: str, value: Any, **updates
    ) -> None:
        await store.update(USERS_COLLECTION, uid, {field: ArrayRemove((value,)), **updates})
