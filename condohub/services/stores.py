"""
Store Adapters
==============
Thin data-access classes over the two stores. Each adapter wraps every
round-trip in ``store_errors`` so a dead or slow store reaches the core as
``StoreUnavailable`` and never as a raw driver exception.

Adapters never commit on their own, except the person ``create`` methods,
which commit the new person in its own short transaction.
"""

from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..models import (
    Amenity, AssociationMembership, Booking, BookingSlot, CommunityPerson,
    CommunityUnitAssignment, Origin, RegistryPerson, RegistryUnit,
    UnitMembership, normalize_email,
)
from ..utils.db_helpers import acquire_row_lock, get_or_create_locked, store_errors

COMMUNITY = Origin.COMMUNITY.value
REGISTRY = Origin.REGISTRY.value


class CommunityPersonStore:
    """Person records of the community store"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(CommunityPerson).options(
            selectinload(CommunityPerson.unit_assignments).joinedload(CommunityUnitAssignment.unit)
        )

    def find_by_opaque_id(self, person_id: str) -> Optional[CommunityPerson]:
        with store_errors(COMMUNITY):
            return self._query().filter(CommunityPerson.id == person_id.lower()).first()

    def find_by_email(self, email: str) -> Optional[CommunityPerson]:
        with store_errors(COMMUNITY):
            return self._query().filter(CommunityPerson.email == normalize_email(email)).first()

    def list(self, limit: int) -> List[CommunityPerson]:
        with store_errors(COMMUNITY):
            return self._query().order_by(CommunityPerson.created_at).limit(limit).all()

    def create(self, names: str, last_names: str, email: str, password: str) -> Tuple[CommunityPerson, bool]:
        """
        Insert and commit a person.

        Returns (person, created). When another writer committed the same
        email first, the unique index rejects this insert and the existing
        record is returned with created=False.
        """
        with store_errors(COMMUNITY):
            person = CommunityPerson(
                names=names,
                last_names=last_names,
                email=email,
                password=password,
            )
            self.db.add(person)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                existing = self.find_by_email(email)
                if existing is None:
                    raise
                return existing, False

            self.db.refresh(person)
            return person, True


class RegistryPersonStore:
    """Person records of the registry store"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(RegistryPerson).options(
            selectinload(RegistryPerson.unit_memberships).joinedload(UnitMembership.unit)
        )

    def find_by_numeric_id(self, person_id: int) -> Optional[RegistryPerson]:
        with store_errors(REGISTRY):
            return self._query().filter(RegistryPerson.id == person_id).first()

    def find_by_email(self, email: str) -> Optional[RegistryPerson]:
        # Rows written by other tools may carry mixed case
        with store_errors(REGISTRY):
            return self._query().filter(
                func.lower(RegistryPerson.email) == normalize_email(email)
            ).first()

    def list(self, limit: int) -> List[RegistryPerson]:
        with store_errors(REGISTRY):
            return self._query().order_by(RegistryPerson.id).limit(limit).all()

    def create(self, names: str, last_names: str, email: str, password: str) -> Tuple[RegistryPerson, bool]:
        with store_errors(REGISTRY):
            person = RegistryPerson(
                names=names,
                last_names=last_names,
                email=email,
                password=password,
            )
            self.db.add(person)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                existing = self.find_by_email(email)
                if existing is None:
                    raise
                return existing, False

            self.db.refresh(person)
            return person, True


class AmenityStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, amenity_id: str) -> Optional[Amenity]:
        with store_errors(COMMUNITY):
            return self.db.query(Amenity).filter(Amenity.id == amenity_id).first()


class BookingStore:
    """Bookings and their per-(amenity, date) slot lock rows"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, booking_id: str, lock: bool = False) -> Optional[Booking]:
        with store_errors(COMMUNITY):
            if lock:
                return acquire_row_lock(self.db, Booking, Booking.id == booking_id)
            return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def lock_slot(self, amenity_id: str, booking_date: date) -> BookingSlot:
        """
        Take the row lock that serializes admissions for (amenity, date).

        Held until the caller commits or rolls back.
        """
        with store_errors(COMMUNITY):
            slot, _ = get_or_create_locked(
                self.db,
                BookingSlot,
                (BookingSlot.amenity_id == amenity_id) & (BookingSlot.slot_date == booking_date),
                {"amenity_id": amenity_id, "slot_date": booking_date},
            )
            return slot

    def find_conflicting(
        self,
        amenity_id: str,
        booking_date: date,
        time_start: str,
        time_end: str,
        exclude_id: Optional[str] = None
    ) -> List[Booking]:
        """
        Bookings on (amenity, date) whose window intersects [time_start, time_end).

        Stored times are zero-padded "HH:MM", so string comparison orders them
        the same way minutes do.
        """
        with store_errors(COMMUNITY):
            query = self.db.query(Booking).filter(
                Booking.amenity_id == amenity_id,
                Booking.booking_date == booking_date,
                Booking.time_start < time_end,
                Booking.time_end > time_start,
            )
            if exclude_id:
                query = query.filter(Booking.id != exclude_id)
            return query.all()

    def create(self, **fields) -> Booking:
        with store_errors(COMMUNITY):
            booking = Booking(**fields)
            self.db.add(booking)
            self.db.flush()
            return booking

    def update(self, booking: Booking, **fields) -> Booking:
        with store_errors(COMMUNITY):
            for field, value in fields.items():
                setattr(booking, field, value)
            self.db.flush()
            return booking

    def delete(self, booking: Booking) -> None:
        with store_errors(COMMUNITY):
            self.db.delete(booking)
            self.db.flush()


class RegistryUnitStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, unit_id: int) -> Optional[RegistryUnit]:
        with store_errors(REGISTRY):
            return self.db.query(RegistryUnit).filter(RegistryUnit.id == unit_id).first()


class MembershipStore:
    """Unit and association memberships of the registry store"""

    def __init__(self, db: Session):
        self.db = db

    def find_membership(self, user_id: int, unit_id: int) -> Optional[UnitMembership]:
        with store_errors(REGISTRY):
            return acquire_row_lock(
                self.db,
                UnitMembership,
                (UnitMembership.user_id == user_id) & (UnitMembership.unit_id == unit_id),
            )

    def upsert_membership(self, user_id: int, unit_id: int, role: str) -> Tuple[UnitMembership, bool]:
        """Create the (user, unit) membership or overwrite its role. Returns (membership, created)."""
        with store_errors(REGISTRY):
            membership, created = get_or_create_locked(
                self.db,
                UnitMembership,
                (UnitMembership.user_id == user_id) & (UnitMembership.unit_id == unit_id),
                {"user_id": user_id, "unit_id": unit_id, "role": role},
            )
            if not created and membership.role != role:
                membership.role = role
                self.db.flush()
            return membership, created

    def find_or_create_association_membership(
        self,
        user_id: int,
        association_id: int
    ) -> Tuple[AssociationMembership, bool]:
        with store_errors(REGISTRY):
            return get_or_create_locked(
                self.db,
                AssociationMembership,
                (AssociationMembership.user_id == user_id)
                & (AssociationMembership.association_id == association_id),
                {"user_id": user_id, "association_id": association_id},
            )

    def delete_membership(self, membership: UnitMembership) -> None:
        with store_errors(REGISTRY):
            self.db.delete(membership)
            self.db.flush()
