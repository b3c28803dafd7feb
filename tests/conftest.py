import copy
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from app.errors import NotFoundError
from app.firebase import ClaimsProvider, PushSender
from app.store import (
    ArrayRemove,
    ArrayUnion,
    Document,
    DocumentStore,
    Query,
    Subscription,
)
from app.utils.image_storage import ObjectStorage


def _matches(data: dict, f) -> bool:
    if f.field not in data:
        return False
    value = data[f.field]
    if f.op == "==":
        return value == f.value
    if f.op == "!=":
        return value != f.value
    if f.op == "<":
        return value < f.value
    if f.op == "<=":
        return value <= f.value
    if f.op == ">":
        return value > f.value
    if f.op == ">=":
        return value >= f.value
    if f.op == "array-contains":
        return isinstance(value, list) and f.value in value
    if f.op == "in":
        return value in f.value
    raise AssertionError(f"unexpected operator {f.op}")


def _apply_update(current: Any, update: Any) -> Any:
    if isinstance(update, ArrayUnion):
        result = list(current or [])
        for v in update.values:
            if v not in result:
                result.append(copy.deepcopy(v))
        return result
    if isinstance(update, ArrayRemove):
        return [v for v in (current or []) if v not in update.values]
    return copy.deepcopy(update)


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore double with Firestore-like query semantics."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self._ids = itertools.count(1)
        self._listeners: list[tuple[str, Callable[[], None]]] = []
        self.fail_next: Optional[BaseException] = None
        self.writes: list[tuple[str, str, str]] = []

    # Test helpers

    def put(self, collection: str, document_id: str, data: dict) -> None:
        self.collections.setdefault(collection, {})[document_id] = copy.deepcopy(data)

    def raw(self, collection: str, document_id: str) -> Optional[dict]:
        return self.collections.get(collection, {}).get(document_id)

    def _check_failure(self) -> None:
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    def _changed(self, collection: str, op: str, document_id: str) -> None:
        self.writes.append((op, collection, document_id))
        for name, notify in list(self._listeners):
            if name == collection:
                notify()

    # DocumentStore

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        self._check_failure()
        document_id = f"{collection[:4]}{next(self._ids):04d}"
        self.put(collection, document_id, {k: _apply_update(None, v) for k, v in data.items()})
        self._changed(collection, "add", document_id)
        return document_id

    async def set(self, collection: str, document_id: str, data: dict[str, Any], merge: bool = False) -> None:
        self._check_failure()
        docs = self.collections.setdefault(collection, {})
        current = docs.get(document_id, {}) if merge else {}
        docs[document_id] = {**current, **{k: _apply_update(current.get(k), v) for k, v in data.items()}}
        self._changed(collection, "set", document_id)

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        self._check_failure()
        data = self.raw(collection, document_id)
        return Document(id=document_id, data=copy.deepcopy(data)) if data is not None else None

    def _run(self, query: Query) -> list[Document]:
        items = [
            (doc_id, data)
            for doc_id, data in self.collections.get(query.collection, {}).items()
            if all(_matches(data, f) for f in query.filters)
        ]
        if query.order_by:
            items = [i for i in items if query.order_by in i[1]]
            items.sort(key=lambda i: i[1][query.order_by], reverse=query.descending)
        if query.start_after:
            ids = [doc_id for doc_id, _ in items]
            if query.start_after in ids:
                items = items[ids.index(query.start_after) + 1 :]
        if query.limit is not None:
            items = items[: query.limit]
        return [Document(id=doc_id, data=copy.deepcopy(data)) for doc_id, data in items]

    async def query(self, query: Query) -> list[Document]:
        self._check_failure()
        return self._run(query)

    async def count(self, query: Query) -> int:
        self._check_failure()
        return len(self._run(query))

    async def update(self, collection: str, document_id: str, updates: dict[str, Any]) -> None:
        self._check_failure()
        current = self.raw(collection, document_id)
        if current is None:
            raise NotFoundError(f"No document to update: {collection}/{document_id}")
        for key, value in updates.items():
            current[key] = _apply_update(current.get(key), value)
        self._changed(collection, "update", document_id)

    async def delete(self, collection: str, document_id: str) -> None:
        self._check_failure()
        self.collections.get(collection, {}).pop(document_id, None)
        self._changed(collection, "delete", document_id)

    def _listen(self, collection: str, subscription: Subscription, snapshot: Callable[[], Any]) -> Subscription:
        entry = (collection, lambda: subscription.push(snapshot()))
        self._listeners.append(entry)
        subscription.on_close(lambda: self._listeners.remove(entry))
        # Like a Firestore listener, the current state is delivered first
        subscription.push(snapshot())
        return subscription

    def subscribe(self, query: Query, transform=None) -> Subscription:
        return self._listen(query.collection, Subscription(transform=transform), lambda: self._run(query))

    def subscribe_document(self, collection: str, document_id: str, transform=None) -> Subscription:
        def snapshot():
            data = self.raw(collection, document_id)
            return Document(id=document_id, data=copy.deepcopy(data)) if data is not None else None

        return self._listen(collection, Subscription(transform=transform), snapshot)


class RecordingClaimsProvider(ClaimsProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, dict]] = []

    async def set_custom_claims(self, user_id: str, claims: dict[str, bool]) -> None:
        self.calls.append((user_id, claims))
        if self.fail:
            raise RuntimeError("auth provider unavailable")


class FakePushSender(PushSender):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send(self, tokens, title, body, data=None) -> int:
        if self.fail:
            raise RuntimeError("messaging unavailable")
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": data or {}})
        return len(tokens)


class FakeObjectStorage(ObjectStorage):
    def __init__(self):
        self.saved: list[tuple[str, bytes, str]] = []

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        self.saved.append((key, data, content_type))
        return f"https://cdn.test/{key}"


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def claims() -> RecordingClaimsProvider:
    return RecordingClaimsProvider()


@pytest.fixture
def push() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def object_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    """An instant tomorrow (UTC), safely in the future"""
    day = datetime.now(timezone.utc).date() + timedelta(days=1)
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def seed_user(store: InMemoryDocumentStore, uid: str, role: str = "customer", **extra) -> None:
    store.put(
        "user",
        uid,
        {"uid": uid, "email": f"{uid}@example.com", "displayName": uid.title(), "role": role, "addresses": [], **extra},
    )


def seed_service(store: InMemoryDocumentStore, service_id: str = "svc1", price: float = 500, **extra) -> None:
    store.put(
        "services",
        service_id,
        {"name": "AC Repair", "category": "electrician", "price": price, "active": True, **extra},
    )


def seed_partner(
    store: InMemoryDocumentStore,
    partner_id: str = "partner1",
    services: tuple = ("svc1",),
    **extra,
) -> None:
    store.put(
        "partners",
        partner_id,
        {
            "name": f"Partner {partner_id}",
            "services": list(services),
            "rating": 0,
            "reviewCount": 0,
            "availability": "online",
            "completedJobs": 0,
            "priceMultiplier": 1.0,
            "location": {"lat": 12.9716, "lng": 77.5946},
            **extra,
        },
    )
