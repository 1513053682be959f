from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import CommunityBase, RegistryBase
from .membership import MembershipRole
from .person import new_object_id


class CommunityUnit(CommunityBase):
    __tablename__ = "community_units"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(100), nullable=False)
    association_id = Column(
        String(24),
        ForeignKey("community_associations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    association = relationship("CommunityAssociation", back_populates="units")
    assignments = relationship("CommunityUnitAssignment", back_populates="unit")

    def __repr__(self):
        return f"<CommunityUnit {self.name}>"


class CommunityUnitAssignment(CommunityBase):
    """Unit list carried by a community person (unit + role)"""
    __tablename__ = "community_unit_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    person_id = Column(String(24), ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False)
    unit_id = Column(String(24), ForeignKey("community_units.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False, default=MembershipRole.RESIDENT.value)

    person = relationship("CommunityPerson", back_populates="unit_assignments")
    unit = relationship("CommunityUnit", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("person_id", "unit_id", name="uq_community_assignment_person_unit"),
    )


class RegistryUnit(RegistryBase):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    association_id = Column(
        Integer,
        ForeignKey("associations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    association = relationship("RegistryAssociation", back_populates="units")
    memberships = relationship("UnitMembership", back_populates="unit", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<RegistryUnit {self.id} - {self.name}>"
