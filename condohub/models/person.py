import enum
import secrets
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.orm import relationship, validates

from ..database import CommunityBase, RegistryBase


class Origin(str, enum.Enum):
    """Store a person record was read from"""
    COMMUNITY = "community"  # 24-hex identifiers
    REGISTRY = "registry"    # integer identifiers


def new_object_id() -> str:
    """Generate a community store identifier (24 hex characters)."""
    return secrets.token_hex(12)


def normalize_email(email: str) -> str:
    """Emails are the cross-store identity key and compare case-insensitively."""
    if not email:
        return ""
    return email.strip().lower()


class CommunityPerson(CommunityBase):
    """Community-side person record"""
    __tablename__ = "community_users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    names = Column(String(100), nullable=False)
    last_names = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    unit_assignments = relationship(
        "CommunityUnitAssignment",
        back_populates="person",
        cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="user")

    @validates("email")
    def _normalize_email(self, key, value):
        return normalize_email(value)

    def __repr__(self):
        return f"<CommunityPerson {self.email}>"


class RegistryPerson(RegistryBase):
    """Registry-side person record"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    names = Column(String(100), nullable=False)
    last_names = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # bcrypt hash

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    unit_memberships = relationship(
        "UnitMembership",
        back_populates="person",
        cascade="all, delete-orphan"
    )
    association_memberships = relationship(
        "AssociationMembership",
        back_populates="person",
        cascade="all, delete-orphan"
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return normalize_email(value)

    def __repr__(self):
        return f"<RegistryPerson {self.id} - {self.email}>"
