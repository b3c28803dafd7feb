"""Firebase Admin SDK setup and the backend collaborators built on it."""

import asyncio
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore, firestore_async, messaging

from .config import FIREBASE_CREDENTIALS_PATH, FIREBASE_PROJECT_ID
from .store import DocumentStore, FirestoreDocumentStore

logger = logging.getLogger(__name__)


def get_firebase_app() -> firebase_admin.App:
    """Initialize Firebase Admin SDK (only once)."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
        if FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
            logger.info("Firebase Admin initialized with service account credentials")
        else:
            cred = credentials.ApplicationDefault()
            logger.info("Firebase Admin initialized with default credentials")
        return firebase_admin.initialize_app(cred, options)


class ClaimsProvider(ABC):
    """Per-user capability flags held by the auth provider."""

    @abstractmethod
    async def set_custom_claims(self, user_id: str, claims: dict[str, bool]) -> None:
        ...


class FirebaseClaimsProvider(ClaimsProvider):
    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    async def set_custom_claims(self, user_id: str, claims: dict[str, bool]) -> None:
        # The Admin SDK auth client is blocking
        await asyncio.to_thread(firebase_auth.set_custom_user_claims, user_id, claims, app=self.app)
        logger.info(f"✅ Custom claims synced for {user_id}: {claims}")


class PushSender(ABC):
    @abstractmethod
    async def send(
        self, tokens: list[str], title: str, body: str, data: Optional[dict[str, str]] = None
    ) -> int:
        """Deliver a push message; returns the number of tokens that accepted it."""


class FirebasePushSender(PushSender):
    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    async def send(
        self, tokens: list[str], title: str, body: str, data: Optional[dict[str, str]] = None
    ) -> int:
        if not tokens:
            return 0
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data or {},
        )
        response = await asyncio.to_thread(messaging.send_each_for_multicast, message, app=self.app)
        if response.failure_count:
            logger.warning(f"⚠️ Push delivery failed for {response.failure_count}/{len(tokens)} tokens")
        return response.success_count


@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    """FastAPI dependency: shared Firestore-backed store."""
    app = get_firebase_app()
    return FirestoreDocumentStore(firestore_async.client(app), firestore.client(app))


@lru_cache(maxsize=1)
def get_claims_provider() -> ClaimsProvider:
    return FirebaseClaimsProvider(get_firebase_app())


@lru_cache(maxsize=1)
def get_push_sender() -> PushSender:
    return FirebasePushSender(get_firebase_app())
