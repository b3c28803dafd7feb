"""
Booking status state machine.

    pending -> accepted | cancelled
    accepted -> in_progress | cancelled
    in_progress -> completed

completed and cancelled are terminal.
"""

from ...errors import InvalidTransition

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "cancelled"}),
    "accepted": frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"completed"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

# Bookings in these states hold the partner's time slot
ACTIVE_STATUSES = ("pending", "accepted", "in_progress")

CANCELLABLE_STATUSES = ("pending", "accepted")

TERMINAL_STATUSES = ("completed", "cancelled")


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, new: str) -> None:
    ensure_open(current)
    if not can_transition(current, new):
        raise InvalidTransition(f"Cannot move a booking from {current} to {new}")


def ensure_open(current: str) -> None:
    """Completed and cancelled bookings are read-only."""
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Booking is already {current} and can no longer change")
