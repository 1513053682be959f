"""
Concurrency Tests for Race Condition Prevention

Tests cover:
- Row locks on PostgreSQL, none on SQLite
- Get-or-create losing a unique-constraint race
- Store failures surfacing as StoreUnavailable
- Serialized admissions for one (amenity, date)
- A lost slot insert on SQLite turning into a time conflict
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from condohub.config import settings
from condohub.database import StoreRegistry, build_engine
from condohub.errors import ReasonCode, StoreUnavailable
from condohub.models import Booking, BookingSlot, UnitMembership
from condohub.services.booking_admission import BookingAdmissionService
from condohub.utils import db_helpers
from condohub.utils.db_helpers import acquire_row_lock, get_or_create_locked, store_errors

from .conftest import Factory, fixed_clock

DAY = date(2025, 4, 16)


def postgres_session():
    db = MagicMock()
    db.bind.dialect.name = 'postgresql'
    return db


class TestRowLocks:
    def test_acquire_row_lock_uses_for_update_on_postgres(self):
        db = postgres_session()
        query = db.query.return_value.filter.return_value

        acquire_row_lock(db, BookingSlot, BookingSlot.amenity_id == 'a')

        query.with_for_update.assert_called_once_with()

    def test_acquire_row_lock_skips_locking_on_sqlite(self):
        db = MagicMock()
        db.bind.dialect.name = 'sqlite'
        query = db.query.return_value.filter.return_value

        acquire_row_lock(db, BookingSlot, BookingSlot.amenity_id == 'a')

        query.with_for_update.assert_not_called()
        query.first.assert_called_once()


class TestGetOrCreateLocked:
    def test_returns_existing_row(self):
        db = postgres_session()
        existing = MagicMock()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = existing

        record, created = get_or_create_locked(
            db, BookingSlot, BookingSlot.amenity_id == 'a', {"amenity_id": "a", "slot_date": DAY}
        )

        assert record is existing
        assert created is False
        db.add.assert_not_called()

    def test_creates_inside_savepoint_on_postgres(self):
        db = postgres_session()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = None

        record, created = get_or_create_locked(
            db, BookingSlot, BookingSlot.amenity_id == 'a', {"amenity_id": "a", "slot_date": DAY}
        )

        assert created is True
        assert record.amenity_id == "a"
        db.begin_nested.assert_called_once()
        db.add.assert_called_once_with(record)

    def test_rereads_after_losing_insert_race(self):
        db = postgres_session()
        winner = MagicMock()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.side_effect = [None, winner]
        db.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        record, created = get_or_create_locked(
            db, UnitMembership, UnitMembership.user_id == 1,
            {"user_id": 1, "unit_id": 2, "role": "owner"}
        )

        assert record is winner
        assert created is False

    def test_no_savepoint_on_sqlite(self):
        db = MagicMock()
        db.bind.dialect.name = 'sqlite'
        inserted = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [None, inserted]
        db.execute.return_value.rowcount = 1

        record, created = get_or_create_locked(
            db, BookingSlot, BookingSlot.amenity_id == 'a', {"amenity_id": "a", "slot_date": DAY}
        )

        assert record is inserted
        assert created is True
        db.begin_nested.assert_not_called()
        db.add.assert_not_called()

    def test_sqlite_conflict_rereads_winner(self):
        db = MagicMock()
        db.bind.dialect.name = 'sqlite'
        winner = MagicMock()
        db.query.return_value.filter.return_value.first.side_effect = [None, winner]
        db.execute.return_value.rowcount = 0

        record, created = get_or_create_locked(
            db, BookingSlot, BookingSlot.amenity_id == 'a', {"amenity_id": "a", "slot_date": DAY}
        )

        assert record is winner
        assert created is False
        db.rollback.assert_not_called()


class TestStoreErrors:
    @pytest.mark.parametrize("error", [
        OperationalError("SELECT 1", {}, Exception("could not connect")),
        PoolTimeoutError("QueuePool limit reached"),
    ])
    def test_driver_failures_become_store_unavailable(self, error):
        with pytest.raises(StoreUnavailable) as exc_info:
            with store_errors("registry"):
                raise error

        assert exc_info.value.store == "registry"
        assert exc_info.value.code == ReasonCode.STORE_UNAVAILABLE

    def test_other_errors_pass_through(self):
        with pytest.raises(ValueError):
            with store_errors("community"):
                raise ValueError("bug")


class TestSerializedAdmission:
    def test_second_admission_for_same_slot_sees_first(self, stores, factory):
        amenity = factory.amenity()
        first_person = factory.community_person(email="uno@example.com")
        second_person = factory.community_person(email="dos@example.com")

        results = []
        for person_id in (first_person.id, second_person.id):
            community_db = stores.community_session()
            registry_db = stores.registry_session()
            try:
                service = BookingAdmissionService(community_db, registry_db, clock=fixed_clock)
                results.append(service.admit(person_id, amenity.id, DAY, "18:00", "19:00"))
            finally:
                community_db.close()
                registry_db.close()

        assert [r.success for r in results] == [True, False]
        assert results[1].error == ReasonCode.TIME_CONFLICT

        check = stores.community_session()
        try:
            assert check.query(Booking).count() == 1
            assert check.query(BookingSlot).count() == 1
        finally:
            check.close()


class TestSlotInsertRace:
    """Two admissions that both miss the (amenity, date) slot row on a file-backed SQLite store"""

    @pytest.fixture
    def file_stores(self, tmp_path):
        registry = StoreRegistry(
            build_engine(f"sqlite:///{tmp_path / 'community.db'}", settings),
            build_engine(f"sqlite:///{tmp_path / 'registry.db'}", settings),
        )
        registry.create_tables()
        yield registry
        registry.dispose()

    def admit(self, stores, person_id, amenity_id, time_start, time_end):
        community_db = stores.community_session()
        registry_db = stores.registry_session()
        try:
            service = BookingAdmissionService(community_db, registry_db, clock=fixed_clock)
            return service.admit(person_id, amenity_id, DAY, time_start, time_end)
        finally:
            community_db.close()
            registry_db.close()

    def test_loser_of_slot_insert_gets_time_conflict(self, file_stores, monkeypatch):
        setup_community = file_stores.community_session()
        setup_registry = file_stores.registry_session()
        try:
            factory = Factory(setup_community, setup_registry)
            amenity_id = factory.amenity().id
            first_id = factory.community_person(email="uno@example.com").id
            second_id = factory.community_person(email="dos@example.com").id
        finally:
            setup_community.close()
            setup_registry.close()

        real_lock = db_helpers.acquire_row_lock
        interleaved = {}

        def lookup_then_let_first_commit(db, model, filter_condition):
            record = real_lock(db, model, filter_condition)
            if model is BookingSlot and not interleaved:
                # Second admission has just missed the slot row; first one commits now
                interleaved["first"] = None
                interleaved["first"] = self.admit(file_stores, first_id, amenity_id, "07:00", "08:00")
            return record

        monkeypatch.setattr(db_helpers, "acquire_row_lock", lookup_then_let_first_commit)
        second = self.admit(file_stores, second_id, amenity_id, "07:30", "08:30")
        monkeypatch.undo()

        assert interleaved["first"].success is True
        assert second.success is False
        assert second.error == ReasonCode.TIME_CONFLICT

        check = file_stores.community_session()
        try:
            assert check.query(BookingSlot).count() == 1
            assert check.query(Booking).count() == 1
        finally:
            check.close()
