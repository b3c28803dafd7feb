"""User router - FastAPI endpoints for profiles, addresses and roles"""

import logging

from fastapi import APIRouter, Depends, Query

from ...auth import get_current_user, require_admin
from ...firebase import ClaimsProvider, get_claims_provider, get_store
from ...store import DocumentStore
from .schemas import (
    Address,
    AddressCreate,
    AddressUpdate,
    RoleUpdate,
    RoleUpdateResult,
    UserProfile,
    UserProfileUpdate,
    UserRole,
)
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    store: DocumentStore = Depends(get_store),
    claims: ClaimsProvider = Depends(get_claims_provider),
) -> UserService:
    """Dependency injection for UserService"""
    return UserService(store, claims)


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: UserProfile = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserProfile)
async def update_me(
    data: UserProfileUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.save_user_profile(current_user.uid, data)


@router.post("/me/addresses", response_model=Address, status_code=201)
async def add_address(
    data: AddressCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.add_address(current_user.uid, data)


@router.patch("/me/addresses/{address_id}", response_model=Address)
async def update_address(
    address_id: str,
    data: AddressUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.update_address(current_user.uid, address_id, data)


@router.delete("/me/addresses/{address_id}", status_code=204)
async def delete_address(
    address_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.delete_address(current_user.uid, address_id)


# ============================================================================
# ADMIN OPERATIONS
# ============================================================================


@router.get("", response_model=list[UserProfile])
async def list_users_by_role(
    role: UserRole = Query("partner"),
    _: UserProfile = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.get_users_by_role(role)


@router.post("/{uid}/suspend", response_model=UserProfile)
async def suspend_partner(
    uid: str,
    _: UserProfile = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.suspend_partner(uid)


@router.post("/{uid}/activate", response_model=UserProfile)
async def activate_partner(
    uid: str,
    _: UserProfile = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.activate_partner(uid)


@router.put("/{uid}/role", response_model=RoleUpdateResult)
async def update_user_role(
    uid: str,
    data: RoleUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Change a user's role. Admin rights are checked against the stored profile."""
    return await service.update_role(current_user.uid, uid, data.role)
