"""
Availability and overlap checks for amenity bookings.

Both checks read the community store only. ``OverlapDetector`` must run
inside the admission transaction, after the (amenity, date) slot lock is
held, otherwise its answer can be stale by the time the booking is written.
"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import InvalidTimeRange, NotBookable, OutsideHours
from ..models import Amenity
from ..utils.timeslots import (
    InvalidTimeOfDay, intervals_overlap, normalize_time, to_minutes, window_contains,
)
from .stores import AmenityStore, BookingStore


def normalize_window(time_start: str, time_end: str):
    """
    Normalize a requested window to "HH:MM" and enforce start < end.

    Raises:
        InvalidTimeRange: malformed time, or start not before end
    """
    try:
        start, end = normalize_time(time_start), normalize_time(time_end)
    except InvalidTimeOfDay as e:
        raise InvalidTimeRange(str(e)) from e

    if to_minutes(start) >= to_minutes(end):
        raise InvalidTimeRange()
    return start, end


class AvailabilityChecker:
    """Is the amenity bookable at all, and is the window inside its daily hours?"""

    def __init__(self, db: Session):
        self.amenities = AmenityStore(db)

    def check_available(
        self,
        amenity_id: str,
        booking_date: date,
        time_start: str,
        time_end: str,
        association_id: Optional[str] = None
    ) -> Amenity:
        """
        Returns the amenity when the window may be booked.

        Raises:
            NotBookable: amenity missing, disabled, or owned by another association
            OutsideHours: window not contained in [opening_time, closing_time)
            StoreUnavailable
        """
        amenity = self.amenities.find_by_id(amenity_id)
        if amenity is None or not amenity.bookable:
            raise NotBookable()
        if association_id is not None and amenity.association_id != association_id:
            raise NotBookable()

        if not window_contains(amenity.opening_time, amenity.closing_time, time_start, time_end):
            hours = f"{amenity.opening_time or '--:--'}-{amenity.closing_time or '--:--'}"
            raise OutsideHours(
                f"Requested time {time_start}-{time_end} is outside the amenity hours {hours}"
            )
        return amenity


class OverlapDetector:
    """Does a window conflict with an existing booking of the same amenity and day?"""

    def __init__(self, db: Session):
        self.bookings = BookingStore(db)

    def has_conflict(
        self,
        amenity_id: str,
        booking_date: date,
        time_start: str,
        time_end: str,
        exclude_booking_id: Optional[str] = None
    ) -> bool:
        start, end = normalize_time(time_start), normalize_time(time_end)
        candidates = self.bookings.find_conflicting(
            amenity_id,
            booking_date,
            start,
            end,
            exclude_id=exclude_booking_id,
        )
        # Half-open windows: 09:00-10:00 and 10:00-11:00 do not conflict
        return any(
            intervals_overlap(start, end, booking.time_start, booking.time_end)
            for booking in candidates
        )
