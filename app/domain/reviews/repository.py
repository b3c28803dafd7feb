"""Review repository - Document store operations for reviews"""

from typing import Any, Optional

from ...store import Document, DocumentStore, Query

REVIEWS_COLLECTION = "reviews"


def partner_reviews_query(partner_id: str) -> Query:
    return (
        Query(REVIEWS_COLLECTION)
        .where("partnerId", "==", partner_id)
        .order("createdAt", descending=True)
    )


class ReviewRepository:
    """Repository for review documents"""

    @staticmethod
    async def create_review(store: DocumentStore, data: dict[str, Any]) -> Document:
        review_id = await store.add(REVIEWS_COLLECTION, data)
        return Document(id=review_id, data=data)

    @staticmethod
    async def get_reviews_by_partner(store: DocumentStore, partner_id: str) -> list[Document]:
        return await store.query(partner_reviews_query(partner_id))

    @staticmethod
    async def get_reviews_by_customer(store: DocumentStore, customer_id: str) -> list[Document]:
        return await store.query(
            Query(REVIEWS_COLLECTION)
            .where("customerId", "==", customer_id)
            .order("createdAt", descending=True)
        )

    @staticmethod
    async def get_review_by_booking(store: DocumentStore, booking_id: str) -> Optional[Document]:
        docs = await store.query(
            Query(REVIEWS_COLLECTION).where("bookingId", "==", booking_id).take(1)
        )
        return docs[0] if docs else None
