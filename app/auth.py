import asyncio
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from .domain.users.schemas import UserProfile
from .domain.users.service import UserService
from .errors import AuthenticationError, PermissionDeniedError, classify
from .firebase import get_firebase_app, get_store
from .store import DocumentStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def verify_firebase_token(token: str) -> dict:
    """Verify a Firebase ID token (signature, audience, issuer, expiry) with the Admin SDK."""
    try:
        return await asyncio.to_thread(firebase_auth.verify_id_token, token, get_firebase_app())
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError) as e:
        classified = classify(e)
        logger.warning(f"⚠️ Token verification failed: {classified.code}")
        raise AuthenticationError(classified.user_message, code=classified.code) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store),
) -> UserProfile:
    """Resolve the signed-in user's profile from a Firebase bearer token"""
    if not credentials:
        raise AuthenticationError(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise AuthenticationError("Invalid token format. Expected a valid JWT token.")

    decoded_token = await verify_firebase_token(token)

    # Firebase ID tokens use 'sub' as the user ID claim, not 'uid'
    firebase_uid = decoded_token.get("uid") or decoded_token.get("sub")
    if not firebase_uid:
        raise AuthenticationError("Invalid token claims")

    service = UserService(store)
    return await service.ensure_user_profile(
        firebase_uid, decoded_token.get("email", ""), decoded_token.get("name", "")
    )


def require_role(*roles: str):
    """Dependency factory rejecting users whose role is not one of ``roles``"""

    async def dependency(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if current_user.role not in roles:
            logger.warning(
                f"🚫 Access denied: {current_user.uid} ({current_user.role}) needs one of {roles}"
            )
            raise PermissionDeniedError()
        return current_user

    return dependency


require_admin = require_role("admin")
require_partner_or_admin = require_role("partner", "admin")
