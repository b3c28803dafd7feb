"""Catalog router - FastAPI endpoints for services and categories"""

import logging

from fastapi import APIRouter, Depends

from ...auth import require_admin
from ...firebase import get_store
from ...store import DocumentStore
from ..users.schemas import UserProfile
from .categories import CATEGORY_DISPLAY_NAMES, SERVICE_CATEGORIES
from .schemas import CategoryInfo, Service, ServiceCreate, ServiceStats, ServiceUpdate
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(store: DocumentStore = Depends(get_store)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(store)


@router.get("", response_model=list[Service])
async def list_services(
    include_inactive: bool = False,
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.get_services(only_active=not include_inactive)


@router.get("/categories", response_model=list[CategoryInfo])
async def list_categories():
    return [
        CategoryInfo(value=category, displayName=CATEGORY_DISPLAY_NAMES[category])
        for category in SERVICE_CATEGORIES
    ]


@router.get("/stats", response_model=ServiceStats)
async def get_service_stats(
    _: UserProfile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.get_service_stats()


@router.get("/{service_id}", response_model=Service)
async def get_service(service_id: str, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_service(service_id)


@router.post("", response_model=Service, status_code=201)
async def create_service(
    data: ServiceCreate,
    _: UserProfile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.create_service(data)


@router.patch("/{service_id}", response_model=Service)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    _: UserProfile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.update_service(service_id, data)
