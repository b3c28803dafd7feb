"""Booking repository - Document store operations for bookings"""

from datetime import datetime
from typing import Any, Optional

from ...errors import retryable
from ...store import Document, DocumentStore, Query

BOOKINGS_COLLECTION = "bookings"


def customer_bookings_query(customer_id: str) -> Query:
    return (
        Query(BOOKINGS_COLLECTION)
        .where("customerId", "==", customer_id)
        .order("createdAt", descending=True)
    )


def partner_bookings_query(partner_id: str) -> Query:
    return (
        Query(BOOKINGS_COLLECTION)
        .where("partnerId", "==", partner_id)
        .order("scheduledTime", descending=True)
    )


def all_bookings_query() -> Query:
    return Query(BOOKINGS_COLLECTION).order("createdAt", descending=True)


class BookingRepository:
    """Repository for booking documents"""

    @staticmethod
    async def create_booking(store: DocumentStore, data: dict[str, Any]) -> Document:
        booking_id = await store.add(BOOKINGS_COLLECTION, data)
        return Document(id=booking_id, data=data)

    @staticmethod
    async def get_booking(store: DocumentStore, booking_id: str) -> Optional[Document]:
        return await store.get(BOOKINGS_COLLECTION, booking_id)

    @staticmethod
    async def update_booking(store: DocumentStore, booking_id: str, updates: dict[str, Any]) -> None:
        await store.update(BOOKINGS_COLLECTION, booking_id, updates)

    @staticmethod
    async def get_customer_bookings(
        store: DocumentStore,
        customer_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> list[Document]:
        query = customer_bookings_query(customer_id).after(cursor)
        if limit is not None:
            query = query.take(limit)
        return await store.query(query)

    @staticmethod
    async def get_partner_bookings(store: DocumentStore, partner_id: str) -> list[Document]:
        return await store.query(partner_bookings_query(partner_id))

    @staticmethod
    async def get_all_bookings(store: DocumentStore) -> list[Document]:
        return await store.query(all_bookings_query())

    @staticmethod
    @retryable()
    async def get_partner_bookings_between(
        store: DocumentStore, partner_id: str, start: datetime, end: datetime
    ) -> list[Document]:
        """Partner bookings whose scheduled start lies in (start, end]"""
        return await store.query(
            Query(BOOKINGS_COLLECTION)
            .where("partnerId", "==", partner_id)
            .where("scheduledTime", ">", start)
            .where("scheduledTime", "<=", end)
            .order("scheduledTime")
        )
