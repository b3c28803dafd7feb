"""Service repository - Document store operations for the service catalog"""

from typing import Any, Optional

from ...store import Document, DocumentStore, Query

SERVICES_COLLECTION = "services"


def services_query(only_active: bool = True) -> Query:
    query = Query(SERVICES_COLLECTION)
    if only_active:
        query = query.where("active", "==", True)
    return query


class ServiceRepository:
    """Repository for service documents"""

    @staticmethod
    async def get_services(store: DocumentStore, only_active: bool = True) -> list[Document]:
        return await store.query(services_query(only_active))

    @staticmethod
    async def get_service(store: DocumentStore, service_id: str) -> Optional[Document]:
        return await store.get(SERVICES_COLLECTION, service_id)

    @staticmethod
    async def create_service(store: DocumentStore, data: dict[str, Any]) -> Document:
        service_id = await store.add(SERVICES_COLLECTION, data)
        return Document(id=service_id, data=data)

    @staticmethod
    async def update_service(store: DocumentStore, service_id: str, updates: dict[str, Any]) -> None:
        await store.update(SERVICES_COLLECTION, service_id, updates)
