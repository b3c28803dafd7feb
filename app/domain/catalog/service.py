"""Catalog service - Business logic for the service catalog"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from ...errors import NotFoundError
from ...store import Document, DocumentStore, Subscription
from .categories import SERVICE_CATEGORIES
from .repository import ServiceRepository, services_query
from .schemas import Service, ServiceCreate, ServiceStats, ServiceUpdate

logger = logging.getLogger(__name__)


def compute_service_stats(services: Iterable[Service]) -> ServiceStats:
    services = list(services)
    by_category = {category: 0 for category in SERVICE_CATEGORIES}
    for service in services:
        by_category[service.category] = by_category.get(service.category, 0) + 1

    active = sum(1 for s in services if s.active)
    return ServiceStats(
        total=len(services),
        active=active,
        inactive=len(services) - active,
        byCategory=by_category,
    )


def _to_services(docs: list[Document]) -> list[Service]:
    return [Service.from_document(doc) for doc in docs]


class CatalogService:
    """Service layer for catalog business logic"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.repo = ServiceRepository()

    async def create_service(self, data: ServiceCreate) -> Service:
        logger.info(f"📥 Creating service: {data.name} ({data.category})")
        doc = await self.repo.create_service(
            self.store,
            {**data.model_dump(), "active": True, "createdAt": datetime.now(timezone.utc)},
        )
        logger.info(f"✅ Service created with ID: {doc.id}")
        return Service.from_document(doc)

    async def get_services(self, only_active: bool = True) -> list[Service]:
        return _to_services(await self.repo.get_services(self.store, only_active))

    async def get_service(self, service_id: str) -> Service:
        doc = await self.repo.get_service(self.store, service_id)
        if not doc:
            raise NotFoundError("Service not found")
        return Service.from_document(doc)

    async def update_service(self, service_id: str, data: ServiceUpdate) -> Service:
        await self.get_service(service_id)
        updates = data.model_dump(exclude_none=True)
        if updates:
            await self.repo.update_service(self.store, service_id, updates)
        return await self.get_service(service_id)

    async def get_service_stats(self) -> ServiceStats:
        return compute_service_stats(await self.get_services(only_active=False))

    def subscribe_services(self, only_active: bool = False) -> Subscription:
        return self.store.subscribe(services_query(only_active), transform=_to_services)

    def subscribe_service_stats(self) -> Subscription:
        return self.store.subscribe(
            services_query(only_active=False),
            transform=lambda docs: compute_service_stats(_to_services(docs)),
        )
