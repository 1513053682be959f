"""
Booking Admission Pipeline
==========================
Single entry point that turns a booking request into a stored booking or a
typed rejection:

    Received -> IdentityResolved -> Validated -> Admitted
    (any state) -> Rejected(reason)

Order of checks:
1. locate the booker (materializing a registry person when needed)
2. start < end
3. date not before today
4. amenity bookable and window inside its hours
5. slot lock on (amenity, date), then overlap scan
6. insert with grouping_id taken from the amenity, commit

Materialization (step 1) commits on its own. If a later step rejects the
request the new community person stays; it is a valid record.
"""

import enum
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..errors import (
    BookingNotFound, CoreError, DateInPast, ServiceResult, StoreUnavailable,
    TimeConflict,
)
from ..models import Booking
from ..utils.db_helpers import STORE_FAILURES, store_errors
from ..utils.logging_config import get_logger
from .availability import AvailabilityChecker, OverlapDetector, normalize_window
from .identity_resolver import Identifier, IdentityResolver
from .stores import COMMUNITY, BookingStore

logger = get_logger(__name__)

# Fields whose change re-runs the admission checks on update
SCHEDULING_FIELDS = ("amenity_id", "booking_date", "time_start", "time_end")


class AdmissionState(str, enum.Enum):
    RECEIVED = "received"
    IDENTITY_RESOLVED = "identity_resolved"
    VALIDATED = "validated"
    ADMITTED = "admitted"
    REJECTED = "rejected"


@dataclass
class AdmissionOutcome(ServiceResult):
    """ServiceResult of an admission, with the state the request ended in"""
    state: AdmissionState = AdmissionState.RECEIVED
    # Last state reached before a rejection
    rejected_at: Optional[AdmissionState] = None


class BookingAdmissionService:
    """Only writer of the bookings table."""

    def __init__(
        self,
        community_db: Session,
        registry_db: Session,
        clock: Callable[[], date] = date.today
    ):
        self.db = community_db
        self.clock = clock
        self.resolver = IdentityResolver(community_db, registry_db)
        self.availability = AvailabilityChecker(community_db)
        self.overlaps = OverlapDetector(community_db)
        self.bookings = BookingStore(community_db)

    # ==================== Admission ====================

    def admit(
        self,
        booker: Identifier,
        amenity_id: str,
        booking_date: date,
        time_start: str,
        time_end: str,
        association_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> AdmissionOutcome:
        started = time.perf_counter()
        state = AdmissionState.RECEIVED

        try:
            person = self.resolver.locate_booker(booker)
            state = AdmissionState.IDENTITY_RESOLVED

            start, end = normalize_window(time_start, time_end)
            self._check_date(booking_date)
            amenity = self.availability.check_available(
                amenity_id, booking_date, start, end, association_id=association_id
            )
            state = AdmissionState.VALIDATED

            self.bookings.lock_slot(amenity.id, booking_date)
            if self.overlaps.has_conflict(amenity.id, booking_date, start, end):
                raise TimeConflict()

            booking = self.bookings.create(
                amenity_id=amenity.id,
                user_id=person.id,
                grouping_id=amenity.association_id,
                booking_date=booking_date,
                time_start=start,
                time_end=end,
                notes=notes,
            )
            self._commit()

        except CoreError as e:
            self._rollback()
            self._log_rejection(e, amenity_id)
            return AdmissionOutcome(
                success=False,
                error=e.code,
                message=e.message,
                state=AdmissionState.REJECTED,
                rejected_at=state,
            )
        except Exception:
            self._rollback()
            raise

        logger.booking_admitted(
            booking.id,
            booking.amenity_id,
            booking.booking_date,
            f"{booking.time_start}-{booking.time_end}",
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return AdmissionOutcome(
            success=True,
            data=booking,
            message="Booking created",
            state=AdmissionState.ADMITTED,
        )

    # ==================== Maintenance ====================

    def update_booking(self, booking_id: str, changes: Dict[str, Any]) -> ServiceResult:
        """
        Apply ``changes`` to a booking.

        Changing amenity, date or times re-runs the time-range, availability
        and overlap checks (the booking never conflicts with itself). The
        date floor applies only when the date itself moves. Other fields are
        written without re-validation.
        """
        try:
            booking = self.bookings.find_by_id(booking_id, lock=True)
            if booking is None:
                raise BookingNotFound()

            fields: Dict[str, Any] = {}
            if any(field in changes for field in SCHEDULING_FIELDS):
                fields.update(self._revalidate(booking, changes))
            if "notes" in changes:
                fields["notes"] = changes["notes"]

            if fields:
                self.bookings.update(booking, **fields)
                self._commit()

        except CoreError as e:
            self._rollback()
            self._log_rejection(e, changes.get("amenity_id"))
            return ServiceResult.from_error(e)
        except Exception:
            self._rollback()
            raise

        logger.info(f"Booking {booking_id} updated: {sorted(fields)}")
        return ServiceResult.ok(booking, "Booking updated")

    def delete_booking(self, booking_id: str) -> ServiceResult:
        try:
            booking = self.bookings.find_by_id(booking_id, lock=True)
            if booking is None:
                raise BookingNotFound()
            self.bookings.delete(booking)
            self._commit()
        except CoreError as e:
            self._rollback()
            return ServiceResult.from_error(e)
        except Exception:
            self._rollback()
            raise

        logger.info(f"Booking {booking_id} deleted")
        return ServiceResult.ok(None, "Booking deleted")

    def get_booking(self, booking_id: str) -> ServiceResult:
        try:
            booking = self.bookings.find_by_id(booking_id)
        except CoreError as e:
            return ServiceResult.from_error(e)
        if booking is None:
            return ServiceResult.from_error(BookingNotFound())
        return ServiceResult.ok(booking)

    # ==================== Internals ====================

    def _revalidate(self, booking: Booking, changes: Dict[str, Any]) -> Dict[str, Any]:
        amenity_id = changes.get("amenity_id") or booking.amenity_id
        booking_date = changes.get("booking_date") or booking.booking_date
        start, end = normalize_window(
            changes.get("time_start") or booking.time_start,
            changes.get("time_end") or booking.time_end,
        )

        unchanged = (
            amenity_id == booking.amenity_id
            and booking_date == booking.booking_date
            and start == booking.time_start
            and end == booking.time_end
        )
        if unchanged:
            return {}

        if booking_date != booking.booking_date:
            self._check_date(booking_date)

        # A booking stays within its association
        amenity = self.availability.check_available(
            amenity_id, booking_date, start, end, association_id=booking.grouping_id
        )
        self.bookings.lock_slot(amenity.id, booking_date)
        if self.overlaps.has_conflict(amenity.id, booking_date, start, end, exclude_booking_id=booking.id):
            raise TimeConflict()

        return {
            "amenity_id": amenity.id,
            "grouping_id": amenity.association_id,
            "booking_date": booking_date,
            "time_start": start,
            "time_end": end,
        }

    def _check_date(self, booking_date: date) -> None:
        if booking_date < self.clock():
            raise DateInPast()

    def _commit(self) -> None:
        with store_errors(COMMUNITY):
            self.db.commit()

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except STORE_FAILURES as e:
            # The connection is already gone; the caller reports the first failure
            logger.warning(f"Rollback on the community store failed: {e}")

    def _log_rejection(self, error: CoreError, amenity_id: Optional[str]) -> None:
        if isinstance(error, StoreUnavailable):
            logger.error(f"Booking aborted, {error.store} store unavailable: {error.message}")
        else:
            logger.booking_rejected(error.code.value, amenity_id, error.message)
