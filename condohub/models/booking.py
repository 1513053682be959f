from datetime import datetime

from sqlalchemy import (
    Column, String, Date, Text, DateTime, ForeignKey, Index,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship

from ..database import CommunityBase
from .person import new_object_id


class Booking(CommunityBase):
    """
    Amenity reservation for one day and a half-open time window.

    Only the booking admission pipeline writes this table.
    """
    __tablename__ = "bookings"

    id = Column(String(24), primary_key=True, default=new_object_id)
    amenity_id = Column(String(24), ForeignKey("amenities.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(24), ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Owning association of the amenity, denormalized for per-tenant queries
    grouping_id = Column(
        String(24),
        ForeignKey("community_associations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    booking_date = Column(Date, nullable=False)
    time_start = Column(String(5), nullable=False)  # "HH:MM", inclusive
    time_end = Column(String(5), nullable=False)    # "HH:MM", exclusive
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    amenity = relationship("Amenity", back_populates="bookings")
    user = relationship("CommunityPerson", back_populates="bookings")
    grouping = relationship("CommunityAssociation")

    __table_args__ = (
        Index("ix_booking_amenity_date", "amenity_id", "booking_date"),
        CheckConstraint("time_start < time_end", name="ck_booking_time_order"),
    )

    def __repr__(self):
        return f"<Booking {self.amenity_id} {self.booking_date} {self.time_start}-{self.time_end}>"


class BookingSlot(CommunityBase):
    """
    Lock row for one (amenity, date) pair.

    Admissions hold a row lock on it while they scan for overlaps and write,
    so concurrent admissions for the same pair run one after the other.
    """
    __tablename__ = "booking_slots"

    id = Column(String(24), primary_key=True, default=new_object_id)
    amenity_id = Column(String(24), ForeignKey("amenities.id", ondelete="CASCADE"), nullable=False)
    slot_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("amenity_id", "slot_date", name="uq_booking_slot_amenity_date"),
    )
