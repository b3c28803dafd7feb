"""Partner repository - Document store operations for partners"""

from typing import Any, Optional

from ...errors import retryable
from ...store import Document, DocumentStore, Query

PARTNERS_COLLECTION = "partners"


class PartnerRepository:
    """Repository for partner documents"""

    @staticmethod
    async def get_partners(store: DocumentStore) -> list[Document]:
        return await store.query(Query(PARTNERS_COLLECTION))

    @staticmethod
    async def get_partner(store: DocumentStore, partner_id: str) -> Optional[Document]:
        return await store.get(PARTNERS_COLLECTION, partner_id)

    @staticmethod
    @retryable()
    async def get_partners_by_service(store: DocumentStore, service_id: str) -> list[Document]:
        return await store.query(
            Query(PARTNERS_COLLECTION).where("services", "array-contains", service_id)
        )

    @staticmethod
    async def create_partner(store: DocumentStore, data: dict[str, Any]) -> Document:
        partner_id = await store.add(PARTNERS_COLLECTION, data)
        return Document(id=partner_id, data=data)

    @staticmethod
    async def update_partner(store: DocumentStore, partner_id: str, updates: dict[str, Any]) -> None:
        await store.update(PARTNERS_COLLECTION, partner_id, updates)
