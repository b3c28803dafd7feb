"""Partner service - Business logic for partners, matching and quotes"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ...errors import NotFoundError
from ...store import DocumentStore
from ..catalog.service import CatalogService
from ..geo import Location
from .ranking import quote_partner, rank_partners
from .repository import PartnerRepository
from .schemas import Partner, PartnerCreate, PartnerFilters, PartnerQuote, PartnerUpdate

logger = logging.getLogger(__name__)


class PartnerService:
    """Service layer for partner business logic"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.repo = PartnerRepository()

    async def create_partner(self, data: PartnerCreate) -> Partner:
        logger.info(f"📥 Creating partner: {data.name}")
        doc = await self.repo.create_partner(
            self.store,
            {
                **data.model_dump(exclude_none=True),
                "rating": 0,
                "reviewCount": 0,
                "completedJobs": 0,
                "createdAt": datetime.now(timezone.utc),
            },
        )
        logger.info(f"✅ Partner created with ID: {doc.id}")
        return Partner.from_document(doc)

    async def get_partners(self) -> list[Partner]:
        return [Partner.from_document(d) for d in await self.repo.get_partners(self.store)]

    async def get_partner(self, partner_id: str) -> Partner:
        doc = await self.repo.get_partner(self.store, partner_id)
        if not doc:
            raise NotFoundError("Partner not found")
        return Partner.from_document(doc)

    async def get_partners_by_service(self, service_id: str) -> list[Partner]:
        docs = await self.repo.get_partners_by_service(self.store, service_id)
        return [Partner.from_document(d) for d in docs]

    async def update_partner(self, partner_id: str, data: PartnerUpdate) -> Partner:
        await self.get_partner(partner_id)
        updates = data.model_dump(exclude_none=True)
        if updates:
            await self.repo.update_partner(self.store, partner_id, updates)
        return await self.get_partner(partner_id)

    async def get_available_partners(
        self,
        service_id: str,
        filters: Optional[PartnerFilters] = None,
        sort_by: str = "rating",
    ) -> list[Partner]:
        """Partners offering a service, filtered and sorted for display"""
        partners = await self.get_partners_by_service(service_id)
        ranked = rank_partners(partners, filters, sort_by)
        logger.info(
            f"🔍 {len(ranked)}/{len(partners)} partners match service {service_id} (sort: {sort_by})"
        )
        return ranked

    async def quote_partners(
        self,
        service_id: str,
        customer_location: Optional[Location] = None,
        filters: Optional[PartnerFilters] = None,
        sort_by: str = "rating",
    ) -> list[PartnerQuote]:
        """Ranked partners for a service, each with the total the customer would pay"""
        service = await CatalogService(self.store).get_service(service_id)
        if not service.active:
            raise NotFoundError("Service is not available")

        partners = await self.get_available_partners(service_id, filters, sort_by)
        return [quote_partner(p, service.price, customer_location) for p in partners]
