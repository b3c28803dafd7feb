"""User service - Business logic for profiles, addresses and roles"""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional

from ...errors import InvalidRequestError, NotFoundError
from ...firebase import ClaimsProvider
from ...store import DocumentStore
from .exceptions import ClaimsSyncError, LastAdmin, SelfDemotion, Unauthorized
from .repository import UserRepository
from .schemas import (
    USER_ROLES,
    Address,
    AddressCreate,
    AddressUpdate,
    RoleUpdateResult,
    UserProfile,
    UserProfileUpdate,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_address_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"addr_{int(time.time() * 1000)}_{suffix}"


def role_claims(role: str) -> dict[str, bool]:
    """Custom claims mirroring a role as one boolean flag per role."""
    return {candidate: candidate == role for candidate in USER_ROLES}


class UserService:
    """Service layer for user profiles and the role-update rule"""

    def __init__(self, store: DocumentStore, claims: Optional[ClaimsProvider] = None):
        self.store = store
        self.claims = claims
        self.repo = UserRepository()

    async def get_user_profile(self, uid: str) -> UserProfile:
        profile = await self.repo.get_user(self.store, uid)
        if not profile:
            raise NotFoundError("User profile not found")
        return profile

    async def ensure_user_profile(self, uid: str, email: str, name: str) -> UserProfile:
        """Return the profile, creating a default customer profile on first sign-in."""
        profile = await self.repo.get_user(self.store, uid)
        if profile:
            return profile

        logger.info(f"🆕 Creating profile for uid: {uid}")
        new_profile = {
            "uid": uid,
            "email": email or "",
            "displayName": name or "",
            "role": "customer",
            "addresses": [],
            "createdAt": datetime.now(timezone.utc),
        }
        await self.repo.save_user(self.store, uid, new_profile, merge=False)
        return UserProfile.model_validate(new_profile)

    async def save_user_profile(self, uid: str, data: UserProfileUpdate) -> UserProfile:
        updates = data.model_dump(exclude_none=True)
        updates["updatedAt"] = datetime.now(timezone.utc)
        await self.repo.save_user(self.store, uid, updates, merge=True)
        return await self.get_user_profile(uid)

    # Addresses

    async def add_address(self, uid: str, data: AddressCreate) -> Address:
        await self.get_user_profile(uid)
        address = Address(id=generate_address_id(), **data.model_dump())
        await self.repo.add_to_array(
            self.store,
            uid,
            "addresses",
            address.model_dump(exclude_none=True),
            updatedAt=datetime.now(timezone.utc),
        )
        logger.info(f"✅ Address {address.id} added for {uid}")
        return address

    async def update_address(self, uid: str, address_id: str, data: AddressUpdate) -> Address:
        profile = await self.get_user_profile(uid)
        changes = data.model_dump(exclude_none=True)

        updated: Optional[Address] = None
        addresses = []
        for address in profile.addresses:
            if address.id == address_id:
                address = address.model_copy(update=changes)
                if "geoPoint" in changes:
                    address.geoPoint = data.geoPoint
                updated = address
            addresses.append(address.model_dump(exclude_none=True))

        if updated is None:
            raise NotFoundError("Address not found")

        await self.repo.update_user(
            self.store, uid, addresses=addresses, updatedAt=datetime.now(timezone.utc)
        )
        return updated

    async def delete_address(self, uid: str, address_id: str) -> None:
        raw = await self.repo.get_raw(self.store, uid)
        if raw is None:
            raise NotFoundError("User profile not found")

        # ArrayRemove matches on the exact stored value
        stored = next((a for a in raw.get("addresses", []) if a.get("id") == address_id), None)
        if stored is None:
            raise NotFoundError("Address not found")

        await self.repo.remove_from_array(
            self.store, uid, "addresses", stored, updatedAt=datetime.now(timezone.utc)
        )
        logger.info(f"🗑️ Address {address_id} removed for {uid}")

    # Admin operations

    async def get_users_by_role(self, role: str) -> list[UserProfile]:
        return await self.repo.get_users_by_role(self.store, role)

    async def set_partner_status(self, uid: str, status: str) -> UserProfile:
        await self.get_user_profile(uid)
        await self.repo.update_user(
            self.store, uid, status=status, updatedAt=datetime.now(timezone.utc)
        )
        logger.info(f"✅ Partner {uid} status set to {status}")
        return await self.get_user_profile(uid)

    async def suspend_partner(self, uid: str) -> UserProfile:
        return await self.set_partner_status(uid, "suspended")

    async def activate_partner(self, uid: str) -> UserProfile:
        return await self.set_partner_status(uid, "active")

    async def update_role(self, actor_id: str, target_id: str, new_role: str) -> RoleUpdateResult:
        """
        Change a user's role and mirror it into the auth provider's custom claims.

        Rules, checked in order:
        - only admins can change roles
        - an admin cannot demote themselves
        - the target must exist
        - at least one admin must remain

        The store is written first; success is only reported once the claims
        sync succeeds. If the sync fails the role write is reverted and a
        ClaimsSyncError is raised.
        """
        if new_role not in USER_ROLES:
            raise InvalidRequestError(f"Unknown role: {new_role}", field="role")

        logger.info(f"🔐 Role update requested by {actor_id}: {target_id} -> {new_role}")

        actor = await self.repo.get_user(self.store, actor_id)
        if not actor or actor.role != "admin":
            raise Unauthorized()

        if actor_id == target_id and new_role != "admin":
            raise SelfDemotion()

        target = await self.repo.get_user(self.store, target_id)
        if not target:
            raise NotFoundError("User not found")

        old_role = target.role
        if old_role == "admin" and new_role != "admin":
            admin_count = await self.repo.count_by_role(self.store, "admin")
            if admin_count <= 1:
                raise LastAdmin()

        await self.repo.update_user(
            self.store, target_id, role=new_role, updatedAt=datetime.now(timezone.utc)
        )

        claims = role_claims(new_role)
        try:
            if self.claims is None:
                raise RuntimeError("No claims provider configured")
            await self.claims.set_custom_claims(target_id, claims)
        except Exception as e:
            logger.error(f"❌ Claims sync failed for {target_id}: {e}")
            rolled_back = await self._revert_role(target_id, old_role)
            raise ClaimsSyncError(target_id, new_role, rolled_back) from e

        logger.info(f"✅ Role of {target_id} changed from {old_role} to {new_role}")
        return RoleUpdateResult(
            userId=target_id,
            role=new_role,
            claims=claims,
            message=(
                f"User role updated to {new_role}. User must sign out and sign in again "
                "for changes to take full effect."
            ),
        )

    async def _revert_role(self, uid: str, role: str) -> bool:
        try:
            await self.repo.update_user(
                self.store, uid, role=role, updatedAt=datetime.now(timezone.utc)
            )
            logger.warning(f"⚠️ Role of {uid} reverted to {role} after claims sync failure")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to revert role of {uid} to {role}: {e}")
            return False
