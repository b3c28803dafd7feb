"""Partner router - FastAPI endpoints for partners and partner matching"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import require_admin
from ...errors import InvalidRequestError
from ...firebase import get_store
from ...store import DocumentStore
from ..geo import Location
from ..users.schemas import UserProfile
from .schemas import Partner, PartnerCreate, PartnerFilters, PartnerQuote, PartnerUpdate
from .service import PartnerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partners", tags=["Partners"])


def get_partner_service(store: DocumentStore = Depends(get_store)) -> PartnerService:
    """Dependency injection for PartnerService"""
    return PartnerService(store)


def get_partner_filters(
    only_online: bool = False,
    min_rating: Optional[float] = Query(None, ge=0, le=5),
) -> PartnerFilters:
    return PartnerFilters(onlyOnline=only_online, minRating=min_rating)


@router.get("", response_model=list[Partner])
async def list_partners(
    service_id: Optional[str] = None,
    service: PartnerService = Depends(get_partner_service),
):
    if service_id:
        return await service.get_partners_by_service(service_id)
    return await service.get_partners()


@router.get("/available", response_model=list[Partner])
async def list_available_partners(
    service_id: str,
    sort_by: str = "rating",
    filters: PartnerFilters = Depends(get_partner_filters),
    service: PartnerService = Depends(get_partner_service),
):
    return await service.get_available_partners(service_id, filters, sort_by)


@router.get("/quotes", response_model=list[PartnerQuote])
async def quote_partners(
    service_id: str,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    sort_by: str = "rating",
    filters: PartnerFilters = Depends(get_partner_filters),
    service: PartnerService = Depends(get_partner_service),
):
    """Ranked partners with final price, distance surcharge and total"""
    if (lat is None) != (lng is None):
        raise InvalidRequestError("lat and lng must be provided together")
    location = Location(lat=lat, lng=lng) if lat is not None else None
    return await service.quote_partners(service_id, location, filters, sort_by)


@router.get("/{partner_id}", response_model=Partner)
async def get_partner(partner_id: str, service: PartnerService = Depends(get_partner_service)):
    return await service.get_partner(partner_id)


@router.post("", response_model=Partner, status_code=201)
async def create_partner(
    data: PartnerCreate,
    _: UserProfile = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return await service.create_partner(data)


@router.patch("/{partner_id}", response_model=Partner)
async def update_partner(
    partner_id: str,
    data: PartnerUpdate,
    _: UserProfile = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return await service.update_partner(partner_id, data)
