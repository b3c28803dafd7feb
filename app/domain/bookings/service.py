"""
Booking service - Business logic for the booking lifecycle

Customers create bookings in ``pending``; partners and admins move them
through the status machine in ``lifecycle``. A partner holds a slot from the
scheduled start for BOOKING_DURATION_HOURS, and only bookings in an active
state block the slot.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ...config import BOOKING_DURATION_HOURS, WARRANTY_DAYS
from ...errors import (
    ConflictError,
    InvalidRequestError,
    InvalidTransition,
    NotFoundError,
    PermissionDeniedError,
    log_error,
)
from ...store import ArrayUnion, DocumentStore, Subscription
from ...utils.sanitization import clean_text
from ..catalog.service import CatalogService
from ..notifications.schemas import NotificationCreate
from ..notifications.service import NotificationService
from ..partners.ranking import quote_partner
from ..partners.service import PartnerService
from ..scheduling import (
    STANDARD_SLOTS,
    calculate_booking_end_time,
    find_conflicts,
    format_time_range,
    get_day_boundaries,
    parse_time_slot,
)
from ..scheduling.time_overlap import ensure_aware, local_zone
from ..users.schemas import UserProfile
from .lifecycle import ACTIVE_STATUSES, CANCELLABLE_STATUSES, ensure_open, ensure_transition
from .repository import (
    BOOKINGS_COLLECTION,
    BookingRepository,
    all_bookings_query,
    customer_bookings_query,
    partner_bookings_query,
)
from .schemas import Booking, BookingCreate, BookingPage, BookingStats, TimeSlotAvailability

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "Cancelled by customer"

STATUS_MESSAGES = {
    "accepted": "Your booking has been accepted",
    "in_progress": "Your service is in progress",
    "completed": "Your service has been completed",
    "cancelled": "Your booking has been cancelled",
}


def compute_booking_stats(bookings: list[Booking]) -> BookingStats:
    """Counts per status; revenue sums servicePrice by payment status"""
    stats = BookingStats(total=len(bookings))
    for booking in bookings:
        if booking.status == "pending":
            stats.pending += 1
        elif booking.status == "accepted":
            stats.accepted += 1
        elif booking.status == "in_progress":
            stats.inProgress += 1
        elif booking.status == "completed":
            stats.completed += 1
        elif booking.status == "cancelled":
            stats.cancelled += 1

        if booking.paymentStatus == "paid":
            stats.totalRevenue += booking.servicePrice
        elif booking.paymentStatus == "pending":
            stats.pendingRevenue += booking.servicePrice
    return stats


def _sort_newest_first(bookings: list[Booking]) -> list[Booking]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(bookings, key=lambda b: ensure_aware(b.createdAt) if b.createdAt else epoch, reverse=True)


def _to_bookings(docs) -> list[Booking]:
    return [Booking.from_document(d) for d in docs]


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, store: DocumentStore, notifications: Optional[NotificationService] = None):
        self.store = store
        self.repo = BookingRepository()
        self.notifications = notifications

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_scheduled_time(data: BookingCreate, now: Optional[datetime] = None) -> datetime:
        """Start instant of the requested booking, in UTC"""
        now = now or datetime.now(timezone.utc)
        if data.type == "instant":
            return now

        if data.scheduledTime is not None:
            scheduled = ensure_aware(data.scheduledTime)
        else:
            day = datetime.combine(data.scheduledDate, time(0, 0), tzinfo=local_zone())
            try:
                scheduled = parse_time_slot(day, data.timeSlot)
            except ValueError as e:
                raise InvalidRequestError(str(e), field="timeSlot") from e

        scheduled = scheduled.astimezone(timezone.utc)
        if scheduled < now:
            raise InvalidRequestError("Scheduled time must be in the future", field="scheduledTime")
        return scheduled

    async def create_booking(self, customer: UserProfile, data: BookingCreate) -> Booking:
        logger.info(f"📥 Booking request from {customer.uid}: service={data.serviceId} partner={data.partnerId}")

        service = await CatalogService(self.store).get_service(data.serviceId)
        if not service.active:
            raise NotFoundError("Service is not available")

        partner = await PartnerService(self.store).get_partner(data.partnerId)
        if data.serviceId not in partner.services:
            raise InvalidRequestError("Partner does not offer this service", field="partnerId")

        scheduled_time = self.resolve_scheduled_time(data)
        end_time = calculate_booking_end_time(scheduled_time)

        conflicts = await self.find_partner_conflicts(partner.id, scheduled_time, end_time)
        if conflicts:
            logger.warning(
                f"⚠️ Partner {partner.id} already booked at {scheduled_time.isoformat()} "
                f"({len(conflicts)} conflicting)"
            )
            raise ConflictError("This time slot is no longer available. Please choose another time.")

        quote = quote_partner(partner, service.price, data.location.geoPoint)
        now = datetime.now(timezone.utc)
        payload = {
            "customerId": customer.uid,
            "customerName": customer.displayName or customer.email,
            "partnerId": partner.id,
            "partnerName": partner.name,
            "serviceId": service.id,
            "serviceName": service.name,
            "servicePrice": service.price,
            "type": data.type,
            "status": "pending",
            "scheduledTime": scheduled_time,
            "location": data.location.model_dump(exclude_none=True),
            "description": clean_text(data.description),
            "images": list(data.images),
            "distanceKm": quote.distanceKm,
            "surcharge": quote.surcharge,
            "totalAmount": quote.totalAmount,
            "paymentMethod": "COD",
            "paymentStatus": "pending",
            "reviewed": False,
            "createdAt": now,
            "updatedAt": now,
        }
        if data.notes:
            payload["notes"] = clean_text(data.notes)

        doc = await self.repo.create_booking(self.store, payload)
        booking = Booking.from_document(doc)
        logger.info(f"✅ Booking created with ID: {booking.id} (total {booking.totalAmount})")

        await self._notify(
            NotificationCreate(
                userId=partner.id,
                title="New booking request",
                message=f"{booking.customerName or 'A customer'} booked {service.name} for "
                f"{format_time_range(scheduled_time, end_time)}",
                type="booking_created",
                link=f"/partner/dashboard/bookings?booking={booking.id}",
            )
        )
        return booking

    async def _notify(self, notification: NotificationCreate) -> None:
        if self.notifications is None:
            return
        try:
            await self.notifications.create_notification(notification)
        except Exception as e:
            # The booking write already succeeded
            log_error("BookingService.notify", e)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def _partner_active_bookings(
        self, partner_id: str, window_start: datetime, window_end: datetime
    ) -> list[Booking]:
        docs = await self.repo.get_partner_bookings_between(
            self.store,
            partner_id,
            window_start.astimezone(timezone.utc),
            window_end.astimezone(timezone.utc),
        )
        return [b for b in _to_bookings(docs) if b.status in ACTIVE_STATUSES]

    async def find_partner_conflicts(
        self, partner_id: str, start: datetime, end: datetime
    ) -> list[Booking]:
        """Active bookings of the partner overlapping [start, end)"""
        start = ensure_aware(start)
        # A booking starting up to one duration earlier still runs into ``start``
        window_start = start - timedelta(hours=BOOKING_DURATION_HOURS)
        existing = await self._partner_active_bookings(partner_id, window_start, ensure_aware(end))
        return find_conflicts(start, end, existing)

    async def get_partner_availability(
        self, partner_id: str, day: date, now: Optional[datetime] = None
    ) -> list[TimeSlotAvailability]:
        """Standard slots of a local calendar day, flagged free or busy"""
        now = now or datetime.now(timezone.utc)
        local_day = datetime.combine(day, time(0, 0), tzinfo=local_zone())
        day_start, day_end = get_day_boundaries(local_day)

        existing = await self._partner_active_bookings(
            partner_id, day_start - timedelta(hours=BOOKING_DURATION_HOURS), day_end
        )

        slots = []
        for slot in STANDARD_SLOTS:
            start = parse_time_slot(local_day, slot)
            end = calculate_booking_end_time(start)
            busy = bool(find_conflicts(start, end, existing))
            slots.append(
                TimeSlotAvailability(
                    time=slot,
                    label=format_time_range(start, end),
                    start=start,
                    end=end,
                    available=not busy and start > now,
                )
            )
        return slots

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Booking:
        doc = await self.repo.get_booking(self.store, booking_id)
        if not doc:
            raise NotFoundError("Booking not found")
        return Booking.from_document(doc)

    async def get_booking_for(self, booking_id: str, user: UserProfile) -> Booking:
        """Booking visible to its customer, its partner, or an admin"""
        booking = await self.get_booking(booking_id)
        if user.role != "admin" and user.uid not in (booking.customerId, booking.partnerId):
            raise PermissionDeniedError()
        return booking

    async def get_customer_bookings(self, customer_id: str) -> list[Booking]:
        docs = await self.repo.get_customer_bookings(self.store, customer_id)
        return _sort_newest_first(_to_bookings(docs))

    async def get_customer_bookings_page(
        self, customer_id: str, page_size: int = 10, cursor: Optional[str] = None
    ) -> BookingPage:
        """One page of a customer's bookings, newest first; pass nextCursor back for the next page"""
        docs = await self.repo.get_customer_bookings(
            self.store, customer_id, limit=page_size + 1, cursor=cursor
        )
        has_more = len(docs) > page_size
        bookings = _to_bookings(docs[:page_size])
        next_cursor = bookings[-1].id if has_more and bookings else None
        return BookingPage(bookings=bookings, nextCursor=next_cursor)

    async def get_partner_bookings(self, partner_id: str) -> list[Booking]:
        return _to_bookings(await self.repo.get_partner_bookings(self.store, partner_id))

    async def get_all_bookings(self) -> list[Booking]:
        return _sort_newest_first(_to_bookings(await self.repo.get_all_bookings(self.store)))

    async def get_booking_stats(self) -> BookingStats:
        return compute_booking_stats(await self.get_all_bookings())

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def update_booking_status(
        self, booking_id: str, status: str, actor: Optional[UserProfile] = None
    ) -> Booking:
        booking = await self.get_booking(booking_id)
        if actor is not None and actor.role != "admin" and actor.uid != booking.partnerId:
            raise PermissionDeniedError()

        ensure_transition(booking.status, status)

        now = datetime.now(timezone.utc)
        updates = {"status": status, "updatedAt": now}
        if status == "completed":
            updates["warrantyValidUntil"] = now + timedelta(days=WARRANTY_DAYS)
            # Cash collected on completion
            updates["paymentStatus"] = "paid"

        await self.repo.update_booking(self.store, booking_id, updates)
        logger.info(f"🔄 Booking {booking_id}: {booking.status} -> {status}")

        await self._notify(
            NotificationCreate(
                userId=booking.customerId,
                title="Booking update",
                message=f"{STATUS_MESSAGES.get(status, status)}: {booking.serviceName}",
                type="booking_status",
                link=f"/confirmation/{booking_id}",
            )
        )
        return await self.get_booking(booking_id)

    async def cancel_booking(
        self, booking_id: str, reason: Optional[str] = None, actor: Optional[UserProfile] = None
    ) -> Booking:
        booking = await self.get_booking(booking_id)
        if actor is not None and actor.role != "admin" and actor.uid != booking.customerId:
            raise PermissionDeniedError()

        if booking.status not in CANCELLABLE_STATUSES:
            raise InvalidTransition(f"A booking that is {booking.status} can no longer be cancelled")

        await self.repo.update_booking(
            self.store,
            booking_id,
            {
                "status": "cancelled",
                "cancellationReason": reason or DEFAULT_CANCELLATION_REASON,
                "updatedAt": datetime.now(timezone.utc),
            },
        )
        logger.info(f"🚫 Booking {booking_id} cancelled")

        await self._notify(
            NotificationCreate(
                userId=booking.partnerId,
                title="Booking cancelled",
                message=f"{booking.serviceName} booking was cancelled: {reason or DEFAULT_CANCELLATION_REASON}",
                type="booking_status",
                link=f"/partner/dashboard/bookings?booking={booking_id}",
            )
        )
        return await self.get_booking(booking_id)

    async def attach_images(self, booking_id: str, urls: list[str]) -> None:
        if not urls:
            return
        booking = await self.get_booking(booking_id)
        ensure_open(booking.status)
        await self.repo.update_booking(
            self.store,
            booking_id,
            {"images": ArrayUnion(tuple(urls)), "updatedAt": datetime.now(timezone.utc)},
        )
        logger.info(f"🖼️ Attached {len(urls)} images to booking {booking_id}")

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_booking(self, booking_id: str) -> Subscription:
        return self.store.subscribe_document(
            BOOKINGS_COLLECTION,
            booking_id,
            transform=lambda doc: Booking.from_document(doc) if doc else None,
        )

    def subscribe_customer_bookings(self, customer_id: str) -> Subscription:
        return self.store.subscribe(customer_bookings_query(customer_id), transform=_to_bookings)

    def subscribe_partner_bookings(self, partner_id: str) -> Subscription:
        return self.store.subscribe(partner_bookings_query(partner_id), transform=_to_bookings)

    def subscribe_all_bookings(self) -> Subscription:
        return self.store.subscribe(all_bookings_query(), transform=_to_bookings)

    def subscribe_booking_stats(self) -> Subscription:
        return self.store.subscribe(
            all_bookings_query(), transform=lambda docs: compute_booking_stats(_to_bookings(docs))
        )
