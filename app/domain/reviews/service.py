"""
Review service

A customer may review each completed booking once. Every new review
recomputes the partner's average rating (one decimal) and review count.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from ...errors import ConflictError, InvalidTransition, PermissionDeniedError, log_error
from ...shared.numbers import round_half_up, to_decimal
from ...store import DocumentStore, Subscription
from ...utils.sanitization import clean_text
from ..bookings.repository import BookingRepository
from ..bookings.service import BookingService
from ..notifications.schemas import NotificationCreate
from ..notifications.service import NotificationService
from ..partners.repository import PartnerRepository
from ..users.schemas import UserProfile
from .repository import ReviewRepository, partner_reviews_query
from .schemas import Review, ReviewCreate

logger = logging.getLogger(__name__)


def average_rating(ratings: Sequence[int]) -> float:
    """Mean rating rounded to one decimal, 0 when there are no ratings"""
    if not ratings:
        return 0
    mean = sum(to_decimal(r) for r in ratings) / len(ratings)
    return float(round_half_up(mean, 1))


def _to_reviews(docs) -> list[Review]:
    return [Review.from_document(d) for d in docs]


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, store: DocumentStore, notifications: Optional[NotificationService] = None):
        self.store = store
        self.repo = ReviewRepository()
        self.notifications = notifications

    async def create_review(self, reviewer: UserProfile, data: ReviewCreate) -> Review:
        booking = await BookingService(self.store).get_booking(data.bookingId)

        if booking.customerId != reviewer.uid:
            raise PermissionDeniedError("You can only review your own bookings")
        if booking.status != "completed":
            raise InvalidTransition("Only completed bookings can be reviewed")

        existing = await self.repo.get_review_by_booking(self.store, booking.id)
        if existing:
            raise ConflictError("A review already exists for this booking")

        doc = await self.repo.create_review(
            self.store,
            {
                "bookingId": booking.id,
                "customerId": reviewer.uid,
                "customerName": booking.customerName or reviewer.displayName,
                "partnerId": booking.partnerId,
                "partnerName": booking.partnerName,
                "rating": data.rating,
                "feedback": clean_text(data.feedback),
                "createdAt": datetime.now(timezone.utc),
            },
        )
        review = Review.from_document(doc)
        logger.info(f"⭐ Review {review.id} ({review.rating}/5) for partner {review.partnerId}")

        await self.update_partner_rating(booking.partnerId)
        await BookingRepository.update_booking(self.store, booking.id, {"reviewed": True})

        if self.notifications is not None:
            try:
                await self.notifications.create_notification(
                    NotificationCreate(
                        userId=booking.partnerId,
                        title="New review",
                        message=f"{review.customerName or 'A customer'} rated you {review.rating}/5",
                        type="review",
                    )
                )
            except Exception as e:
                log_error("ReviewService.notify", e)

        return review

    async def update_partner_rating(self, partner_id: str) -> None:
        reviews = await self.get_reviews_by_partner(partner_id)
        if not reviews:
            logger.info(f"No reviews found for partner: {partner_id}")
            return

        rating = average_rating([r.rating for r in reviews])
        await PartnerRepository.update_partner(
            self.store, partner_id, {"rating": rating, "reviewCount": len(reviews)}
        )
        logger.info(f"✅ Partner {partner_id} rating is now {rating} ({len(reviews)} reviews)")

    async def get_reviews_by_partner(self, partner_id: str) -> list[Review]:
        return _to_reviews(await self.repo.get_reviews_by_partner(self.store, partner_id))

    async def get_reviews_by_customer(self, customer_id: str) -> list[Review]:
        return _to_reviews(await self.repo.get_reviews_by_customer(self.store, customer_id))

    async def get_review_by_booking(self, booking_id: str) -> Optional[Review]:
        doc = await self.repo.get_review_by_booking(self.store, booking_id)
        return Review.from_document(doc) if doc else None

    def subscribe_partner_reviews(self, partner_id: str) -> Subscription:
        return self.store.subscribe(partner_reviews_query(partner_id), transform=_to_reviews)
