"""
Document store access.

The domain services talk to a ``DocumentStore`` handed to them at construction
time. ``FirestoreDocumentStore`` is the production implementation on top of the
Firebase Admin SDK; tests pass an in-memory double.

Live queries are exposed as ``Subscription`` objects: async iterators yielding
full snapshots. Each snapshot replaces the previous one wholesale.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SUPPORTED_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "array-contains", "in")

# Firestore spells some operators with underscores
FIRESTORE_OPERATORS = {"array-contains": "array_contains"}


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported query operator: {self.op}")


@dataclass(frozen=True)
class Query:
    """Immutable collection query. Builder methods return a new query."""

    collection: str
    filters: tuple[Filter, ...] = ()
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    start_after: Optional[str] = None  # document id cursor

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + (Filter(field_name, op, value),))

    def order(self, field_name: str, descending: bool = False) -> "Query":
        return replace(self, order_by=field_name, descending=descending)

    def take(self, limit: int) -> "Query":
        return replace(self, limit=limit)

    def after(self, document_id: Optional[str]) -> "Query":
        return replace(self, start_after=document_id)


@dataclass
class Document:
    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.data, "id": self.id}


@dataclass(frozen=True)
class ArrayUnion:
    """Update marker: atomically append values not already present."""

    values: tuple


@dataclass(frozen=True)
class ArrayRemove:
    """Update marker: atomically remove all instances of the values."""

    values: tuple


_CLOSED = object()


class Subscription:
    """
    Cancellable stream of snapshots from a live query.

    ``push``/``fail`` may be called from any thread (the Firestore watch runs its
    callbacks on a background thread). Once ``unsubscribe`` returns, iteration
    stops and nothing further is delivered, even if snapshots were queued.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        transform: Optional[Callable[[Any], Any]] = None,
    ):
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._transform = transform
        self._closed = False
        self._lock = threading.Lock()
        self._on_close: list[Callable[[], Any]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, callback: Callable[[], Any]) -> None:
        self._on_close.append(callback)

    def push(self, snapshot: Any) -> None:
        with self._lock:
            if self._closed:
                return
        try:
            value = self._transform(snapshot) if self._transform else snapshot
        except Exception as e:
            self.fail(e)
            return
        self._schedule(("value", value))

    def fail(self, error: BaseException) -> None:
        with self._lock:
            if self._closed:
                return
        self._schedule(("error", error))

    def _schedule(self, item) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._deliver, item)

    def _deliver(self, item) -> None:
        if self._closed and item is not _CLOSED:
            return
        self._queue.put_nowait(item)

    def unsubscribe(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for callback in self._on_close:
            try:
                callback()
            except Exception as e:
                logger.warning(f"⚠️ Error while closing subscription: {e}")
        self._schedule(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        kind, payload = item
        if kind == "error":
            self.unsubscribe()
            raise payload
        return payload

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class DocumentStore(ABC):
    """Collection-scoped CRUD plus live queries."""

    @abstractmethod
    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document with a generated id and return the id."""

    @abstractmethod
    async def set(
        self, collection: str, document_id: str, data: dict[str, Any], merge: bool = False
    ) -> None:
        """Create or overwrite (or merge into) a document with a known id."""

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        """Fetch one document, or None when it does not exist."""

    @abstractmethod
    async def query(self, query: Query) -> list[Document]:
        """Run a query and return matching documents."""

    @abstractmethod
    async def count(self, query: Query) -> int:
        """Count documents matching a query."""

    @abstractmethod
    async def update(self, collection: str, document_id: str, updates: dict[str, Any]) -> None:
        """Partial update of an existing document. Raises when it does not exist."""

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a document."""

    @abstractmethod
    def subscribe(
        self, query: Query, transform: Optional[Callable[[list[Document]], Any]] = None
    ) -> Subscription:
        """Live query delivering the full result list on every change."""

    @abstractmethod
    def subscribe_document(
        self,
        collection: str,
        document_id: str,
        transform: Optional[Callable[[Optional[Document]], Any]] = None,
    ) -> Subscription:
        """Live document delivering the document (or None once deleted) on every change."""


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by Cloud Firestore through the Firebase Admin SDK."""

    def __init__(self, async_client, sync_client):
        # Queries and writes go through the async client; the async client has
        # no on_snapshot, so live queries use the sync client's watch.
        self.client = async_client
        self.watch_client = sync_client

    @staticmethod
    def _to_firestore(value: Any) -> Any:
        from google.cloud import firestore

        if isinstance(value, ArrayUnion):
            return firestore.ArrayUnion([FirestoreDocumentStore._to_firestore(v) for v in value.values])
        if isinstance(value, ArrayRemove):
            return firestore.ArrayRemove([FirestoreDocumentStore._to_firestore(v) for v in value.values])
        if isinstance(value, dict):
            if set(value.keys()) == {"lat", "lng"}:
                return firestore.GeoPoint(value["lat"], value["lng"])
            return {k: FirestoreDocumentStore._to_firestore(v) for k, v in value.items()}
        if isinstance(value, list):
            return [FirestoreDocumentStore._to_firestore(v) for v in value]
        return value

    @staticmethod
    def _from_firestore(value: Any) -> Any:
        from google.cloud import firestore

        if isinstance(value, firestore.GeoPoint):
            return {"lat": value.latitude, "lng": value.longitude}
        if isinstance(value, dict):
            return {k: FirestoreDocumentStore._from_firestore(v) for k, v in value.items()}
        if isinstance(value, list):
            return [FirestoreDocumentStore._from_firestore(v) for v in value]
        return value

    def _to_document(self, snapshot) -> Document:
        return Document(id=snapshot.id, data=self._from_firestore(snapshot.to_dict() or {}))

    @staticmethod
    def _apply_filters(ref, query: Query):
        from google.cloud.firestore_v1.base_query import FieldFilter

        for f in query.filters:
            ref = ref.where(
                filter=FieldFilter(
                    f.field,
                    FIRESTORE_OPERATORS.get(f.op, f.op),
                    FirestoreDocumentStore._to_firestore(f.value),
                )
            )
        if query.order_by:
            direction = "DESCENDING" if query.descending else "ASCENDING"
            ref = ref.order_by(query.order_by, direction=direction)
        if query.limit is not None:
            ref = ref.limit(query.limit)
        return ref

    async def _build(self, query: Query):
        collection = self.client.collection(query.collection)
        ref = self._apply_filters(collection, query)
        if query.start_after:
            cursor = await collection.document(query.start_after).get()
            if cursor.exists:
                ref = ref.start_after(cursor)
        return ref

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        _, doc_ref = await self.client.collection(collection).add(self._to_firestore(data))
        logger.debug(f"✅ Added {collection}/{doc_ref.id}")
        return doc_ref.id

    async def set(
        self, collection: str, document_id: str, data: dict[str, Any], merge: bool = False
    ) -> None:
        await self.client.collection(collection).document(document_id).set(
            self._to_firestore(data), merge=merge
        )

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        snapshot = await self.client.collection(collection).document(document_id).get()
        if not snapshot.exists:
            return None
        return self._to_document(snapshot)

    async def query(self, query: Query) -> list[Document]:
        ref = await self._build(query)
        return [self._to_document(snapshot) async for snapshot in ref.stream()]

    async def count(self, query: Query) -> int:
        ref = await self._build(query)
        results = await ref.count().get()
        return int(results[0][0].value)

    async def update(self, collection: str, document_id: str, updates: dict[str, Any]) -> None:
        await self.client.collection(collection).document(document_id).update(
            self._to_firestore(updates)
        )

    async def delete(self, collection: str, document_id: str) -> None:
        await self.client.collection(collection).document(document_id).delete()

    def subscribe(
        self, query: Query, transform: Optional[Callable[[list[Document]], Any]] = None
    ) -> Subscription:
        subscription = Subscription(transform=transform)
        ref = self._apply_filters(self.watch_client.collection(query.collection), query)

        def on_snapshot(snapshots, _changes, _read_time):
            subscription.push([self._to_document(s) for s in snapshots])

        watch = ref.on_snapshot(on_snapshot)
        subscription.on_close(watch.unsubscribe)
        logger.debug(f"📡 Subscribed to {query.collection} ({len(query.filters)} filters)")
        return subscription

    def subscribe_document(
        self,
        collection: str,
        document_id: str,
        transform: Optional[Callable[[Optional[Document]], Any]] = None,
    ) -> Subscription:
        subscription = Subscription(transform=transform)
        ref = self.watch_client.collection(collection).document(document_id)

        def on_snapshot(snapshots, _changes, _read_time):
            snapshot = snapshots[0] if snapshots else None
            if snapshot is not None and snapshot.exists:
                subscription.push(self._to_document(snapshot))
            else:
                subscription.push(None)

        watch = ref.on_snapshot(on_snapshot)
        subscription.on_close(watch.unsubscribe)
        return subscription
