"""
Failure taxonomy shared by the core services.

Expected business outcomes (not found, conflict, out of hours...) are raised
as ``CoreError`` subclasses inside the services and handed back to callers as
a failed ``ServiceResult`` carrying a stable ``ReasonCode``. Infrastructure
trouble surfaces as ``StoreUnavailable`` so callers can tell "this time is
already booked" apart from "service unavailable".
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ReasonCode(str, enum.Enum):
    NOT_FOUND = "not_found"
    IDENTITY_NOT_FOUND = "identity_not_found"
    PERSON_NOT_FOUND = "person_not_found"
    UNIT_NOT_FOUND = "unit_not_found"
    BOOKING_NOT_FOUND = "booking_not_found"
    INVALID_IDENTIFIER = "invalid_identifier"
    INVALID_TIME_RANGE = "invalid_time_range"
    DATE_IN_PAST = "date_in_past"
    NOT_BOOKABLE = "not_bookable"
    OUTSIDE_HOURS = "outside_hours"
    TIME_CONFLICT = "time_conflict"
    NOT_ASSIGNED = "not_assigned"
    EMAIL_TAKEN = "email_taken"
    STORE_UNAVAILABLE = "store_unavailable"


class CoreError(Exception):
    """Base class for every typed failure of the core"""
    code: ReasonCode = ReasonCode.NOT_FOUND
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(CoreError):
    code = ReasonCode.NOT_FOUND
    default_message = "Not found"


class IdentityNotFound(NotFound):
    code = ReasonCode.IDENTITY_NOT_FOUND
    default_message = "Person not found in any store"


class PersonNotFound(NotFound):
    code = ReasonCode.PERSON_NOT_FOUND
    default_message = "Person not found"


class UnitNotFound(NotFound):
    code = ReasonCode.UNIT_NOT_FOUND
    default_message = "Unit not found"


class BookingNotFound(NotFound):
    code = ReasonCode.BOOKING_NOT_FOUND
    default_message = "Booking not found"


class InvalidIdentifier(CoreError):
    code = ReasonCode.INVALID_IDENTIFIER
    default_message = "Identifier is neither a community id nor a registry id"


class InvalidTimeRange(CoreError):
    code = ReasonCode.INVALID_TIME_RANGE
    default_message = "Start time must be before end time"


class DateInPast(CoreError):
    code = ReasonCode.DATE_IN_PAST
    default_message = "Date must be equal to or greater than today"


class NotBookable(CoreError):
    code = ReasonCode.NOT_BOOKABLE
    default_message = "Amenity not found or not bookable"


class OutsideHours(CoreError):
    code = ReasonCode.OUTSIDE_HOURS
    default_message = "Requested time is outside the amenity opening hours"


class TimeConflict(CoreError):
    code = ReasonCode.TIME_CONFLICT
    default_message = "There is already a booking for this time"


class NotAssigned(CoreError):
    code = ReasonCode.NOT_ASSIGNED
    default_message = "User is not assigned to the unit"


class EmailTaken(CoreError):
    code = ReasonCode.EMAIL_TAKEN
    default_message = "A person with this email already exists"


class StoreUnavailable(CoreError):
    """A store round-trip failed or timed out. Never retried by the core."""
    code = ReasonCode.STORE_UNAVAILABLE
    default_message = "Store unavailable"

    def __init__(self, store: str, message: Optional[str] = None):
        self.store = store
        super().__init__(message or f"{store} store unavailable")


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a core operation: success with data, or a reason code"""
    success: bool
    data: Optional[T] = None
    error: Optional[ReasonCode] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ServiceResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: ReasonCode, message: Optional[str] = None) -> "ServiceResult":
        return cls(success=False, error=error, message=message)

    @classmethod
    def from_error(cls, exc: CoreError) -> "ServiceResult":
        return cls.fail(exc.code, exc.message)

    @property
    def is_infrastructure_failure(self) -> bool:
        return self.error == ReasonCode.STORE_UNAVAILABLE
