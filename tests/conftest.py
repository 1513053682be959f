"""
Shared fixtures: two in-memory SQLite stores and small record factories.
"""

import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from condohub.config import settings
from condohub.database import StoreRegistry, build_engine
from condohub.models import (
    Amenity, Booking, CommunityAssociation, CommunityPerson, RegistryAssociation,
    RegistryPerson, RegistryUnit,
)

# Pinned "today" so fixed calendar dates stay bookable
TODAY = date(2025, 4, 1)


def fixed_clock():
    return TODAY


@pytest.fixture
def stores():
    registry = StoreRegistry(
        build_engine("sqlite://", settings),
        build_engine("sqlite://", settings),
    )
    registry.create_tables()
    yield registry
    registry.dispose()


@pytest.fixture
def community_db(stores):
    db = stores.community_session()
    yield db
    db.close()


@pytest.fixture
def registry_db(stores):
    db = stores.registry_session()
    yield db
    db.close()


class Factory:
    """Inserts committed records straight into the stores"""

    def __init__(self, community_db, registry_db):
        self.community_db = community_db
        self.registry_db = registry_db

    def _save(self, db, record):
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    def community_association(self, name="Residencial Los Pinos"):
        return self._save(self.community_db, CommunityAssociation(name=name))

    def amenity(self, association=None, name="Gimnasio", opening_time="06:00",
                closing_time="23:00", bookable=True):
        association = association or self.community_association()
        return self._save(self.community_db, Amenity(
            name=name,
            association_id=association.id,
            opening_time=opening_time,
            closing_time=closing_time,
            bookable=bookable,
        ))

    def community_person(self, email="maria@example.com", names="Maria", last_names="Lopez",
                         password="$2b$12$communityhash"):
        return self._save(self.community_db, CommunityPerson(
            names=names, last_names=last_names, email=email, password=password
        ))

    def booking(self, amenity, person, booking_date=date(2025, 4, 16),
                time_start="09:00", time_end="10:00"):
        return self._save(self.community_db, Booking(
            amenity_id=amenity.id,
            user_id=person.id,
            grouping_id=amenity.association_id,
            booking_date=booking_date,
            time_start=time_start,
            time_end=time_end,
        ))

    def registry_person(self, email="ana@example.com", names="Ana", last_names="Garcia",
                        password="$2b$12$registryhash"):
        return self._save(self.registry_db, RegistryPerson(
            names=names, last_names=last_names, email=email, password=password
        ))

    def registry_association(self, name="Torres del Parque"):
        return self._save(self.registry_db, RegistryAssociation(name=name))

    def registry_unit(self, association=None, name="A-101"):
        association = association or self.registry_association()
        return self._save(self.registry_db, RegistryUnit(name=name, association_id=association.id))


@pytest.fixture
def factory(community_db, registry_db):
    return Factory(community_db, registry_db)
