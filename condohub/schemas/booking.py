from datetime import date, datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..services.identity_resolver import IdentifierKind


def _strip_markup(v):
    """Remove script tags and inline event handlers from free text"""
    if isinstance(v, str):
        import re
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v


class BookingWindow(BaseModel):
    """
    Date and time window of a booking request.

    Times stay strings here; the admission pipeline normalizes them and
    rejects malformed values with a reason code.
    """
    booking_date: date = Field(..., validation_alias=AliasChoices("booking_date", "date"))
    time_start: str = Field(..., max_length=8, validation_alias=AliasChoices("time_start", "timeStart"))
    time_end: str = Field(..., max_length=8, validation_alias=AliasChoices("time_end", "timeEnd"))
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('notes', mode='before')
    @classmethod
    def sanitize_notes(cls, v):
        return _strip_markup(v)


class CombinedBookingCreate(BookingWindow):
    """Body of the registry-person booking endpoint (ids travel in the path)"""


class BookingCreate(BookingWindow):
    booker: str = Field(..., min_length=1, max_length=255, description="Community id, registry id or email")
    booker_kind: Optional[IdentifierKind] = Field(
        None,
        description="Interpret the booker as this kind instead of guessing from its shape"
    )
    amenity_id: str = Field(..., min_length=1, max_length=24)
    association_id: Optional[str] = Field(None, max_length=24)


class BookingUpdate(BaseModel):
    amenity_id: Optional[str] = Field(None, max_length=24)
    booking_date: Optional[date] = Field(None, validation_alias=AliasChoices("booking_date", "date"))
    time_start: Optional[str] = Field(None, max_length=8, validation_alias=AliasChoices("time_start", "timeStart"))
    time_end: Optional[str] = Field(None, max_length=8, validation_alias=AliasChoices("time_end", "timeEnd"))
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('notes', mode='before')
    @classmethod
    def sanitize_notes(cls, v):
        return _strip_markup(v)


class BookingResponse(BaseModel):
    id: str
    amenity_id: str
    user_id: str
    grouping_id: str
    booking_date: date
    time_start: str
    time_end: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
