import enum
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import RegistryBase


class MembershipRole(str, enum.Enum):
    OWNER = "owner"
    RESIDENT = "resident"


class UnitMembership(RegistryBase):
    """(person, unit, role) fact; one row per person and unit"""
    __tablename__ = "user_units"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    person = relationship("RegistryPerson", back_populates="unit_memberships")
    unit = relationship("RegistryUnit", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "unit_id", name="uq_user_units_user_unit"),
    )

    def __repr__(self):
        return f"<UnitMembership user={self.user_id} unit={self.unit_id} {self.role}>"


class AssociationMembership(RegistryBase):
    """Association-level membership implied by any unit membership under it"""
    __tablename__ = "user_associations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    association_id = Column(Integer, ForeignKey("associations.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    person = relationship("RegistryPerson", back_populates="association_memberships")
    association = relationship("RegistryAssociation", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "association_id", name="uq_user_associations_user_association"),
    )

    def __repr__(self):
        return f"<AssociationMembership user={self.user_id} association={self.association_id}>"
