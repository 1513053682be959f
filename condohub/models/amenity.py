from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship, validates

from ..database import CommunityBase
from ..utils.timeslots import normalize_optional_time
from .person import new_object_id


class Amenity(CommunityBase):
    """Bookable facility of an association (gym, pool, party room...)"""
    __tablename__ = "amenities"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    bookable = Column(Boolean, default=True, nullable=False)

    # Daily window "HH:MM"; either may be absent
    opening_time = Column(String(5), nullable=True)
    closing_time = Column(String(5), nullable=True)

    association_id = Column(
        String(24),
        ForeignKey("community_associations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    association = relationship("CommunityAssociation", back_populates="amenities")
    bookings = relationship("Booking", back_populates="amenity")

    @validates("opening_time", "closing_time")
    def _validate_time(self, key, value):
        # Raises InvalidTimeOfDay (a ValueError) on anything that is not a real HH:MM
        return normalize_optional_time(value)

    def __repr__(self):
        return f"<Amenity {self.name} {self.opening_time}-{self.closing_time}>"
