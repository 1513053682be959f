"""
Membership Consistency Tests

Tests cover:
- Assignment creates exactly one unit membership and one association membership
- Re-assignment overwrites the role without duplicating rows
- Removal keeps the association membership
- Any failure rolls back both writes
"""

import pytest

from condohub.errors import ReasonCode, StoreUnavailable
from condohub.models import AssociationMembership, MembershipRole, UnitMembership
from condohub.services.membership_service import MembershipService
from condohub.services.stores import MembershipStore


class TestAssign:
    def test_assign_creates_both_memberships(self, registry_db, factory):
        person = factory.registry_person()
        unit = factory.registry_unit()

        result = MembershipService(registry_db).assign(person.id, unit.id, MembershipRole.OWNER)

        assert result.success is True
        assert result.data.membership_created is True
        assert result.data.association_membership_created is True
        assert result.data.association_id == unit.association_id
        assert registry_db.query(UnitMembership).count() == 1
        assert registry_db.query(AssociationMembership).count() == 1

    def test_reassign_changes_role_only(self, registry_db, factory):
        person = factory.registry_person()
        unit = factory.registry_unit()
        service = MembershipService(registry_db)

        service.assign(person.id, unit.id, MembershipRole.OWNER)
        result = service.assign(person.id, unit.id, MembershipRole.RESIDENT)

        assert result.success is True
        assert result.data.membership_created is False
        memberships = registry_db.query(UnitMembership).all()
        assert len(memberships) == 1
        assert memberships[0].role == "resident"
        assert registry_db.query(AssociationMembership).count() == 1

    def test_second_unit_in_same_association(self, registry_db, factory):
        person = factory.registry_person()
        association = factory.registry_association()
        first = factory.registry_unit(association, "A-101")
        second = factory.registry_unit(association, "A-102")
        service = MembershipService(registry_db)

        service.assign(person.id, first.id, MembershipRole.OWNER)
        result = service.assign(person.id, second.id, MembershipRole.RESIDENT)

        assert result.data.association_membership_created is False
        assert registry_db.query(UnitMembership).count() == 2
        assert registry_db.query(AssociationMembership).count() == 1

    def test_person_not_found(self, registry_db, factory):
        unit = factory.registry_unit()
        result = MembershipService(registry_db).assign(404, unit.id, MembershipRole.OWNER)

        assert result.error == ReasonCode.PERSON_NOT_FOUND
        assert registry_db.query(UnitMembership).count() == 0

    def test_unit_not_found(self, registry_db, factory):
        person = factory.registry_person()
        result = MembershipService(registry_db).assign(person.id, 404, MembershipRole.OWNER)

        assert result.error == ReasonCode.UNIT_NOT_FOUND
        assert registry_db.query(AssociationMembership).count() == 0

    def test_person_id_beyond_registry_range(self, registry_db, factory):
        unit = factory.registry_unit()
        result = MembershipService(registry_db).assign(10 ** 20, unit.id, MembershipRole.OWNER)

        assert result.error == ReasonCode.PERSON_NOT_FOUND
        assert registry_db.query(UnitMembership).count() == 0

    def test_unit_id_beyond_registry_range(self, registry_db, factory):
        person = factory.registry_person()
        result = MembershipService(registry_db).assign(person.id, 2 ** 31, MembershipRole.OWNER)

        assert result.error == ReasonCode.UNIT_NOT_FOUND

    def test_failure_after_first_write_rolls_back(self, registry_db, factory, monkeypatch):
        person = factory.registry_person()
        unit = factory.registry_unit()

        def unavailable(self, user_id, association_id):
            raise StoreUnavailable("registry")

        monkeypatch.setattr(MembershipStore, "find_or_create_association_membership", unavailable)
        result = MembershipService(registry_db).assign(person.id, unit.id, MembershipRole.OWNER)

        assert result.error == ReasonCode.STORE_UNAVAILABLE
        assert registry_db.query(UnitMembership).count() == 0
        assert registry_db.query(AssociationMembership).count() == 0

    def test_unexpected_error_rolls_back_and_propagates(self, registry_db, factory, monkeypatch):
        person = factory.registry_person()
        unit = factory.registry_unit()

        def broken(self, user_id, association_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(MembershipStore, "find_or_create_association_membership", broken)
        with pytest.raises(RuntimeError):
            MembershipService(registry_db).assign(person.id, unit.id, MembershipRole.OWNER)

        assert registry_db.query(UnitMembership).count() == 0


class TestRemove:
    def test_remove_keeps_association_membership(self, registry_db, factory):
        person = factory.registry_person()
        unit = factory.registry_unit()
        service = MembershipService(registry_db)
        service.assign(person.id, unit.id, MembershipRole.OWNER)

        result = service.remove(person.id, unit.id)

        assert result.success is True
        assert registry_db.query(UnitMembership).count() == 0
        assert registry_db.query(AssociationMembership).count() == 1

    def test_remove_when_not_assigned(self, registry_db, factory):
        person = factory.registry_person()
        unit = factory.registry_unit()

        result = MembershipService(registry_db).remove(person.id, unit.id)

        assert result.success is False
        assert result.error == ReasonCode.NOT_ASSIGNED
        assert result.message == "User is not assigned to the unit"

    @pytest.mark.parametrize("person_id,unit_id", [(10 ** 20, 1), (1, 10 ** 20), (-1, 1)])
    def test_remove_with_id_beyond_registry_range(self, registry_db, person_id, unit_id):
        result = MembershipService(registry_db).remove(person_id, unit_id)

        assert result.error == ReasonCode.NOT_ASSIGNED
