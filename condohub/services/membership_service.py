"""
Membership Consistency Manager
==============================
Keeps unit memberships and the association memberships they imply in step,
inside one registry transaction per operation.

- assign: upsert (person, unit) with the role, then make sure the person is a
  member of the unit's association
- remove: delete the (person, unit) membership; the association membership
  is left in place even if no other unit under it remains
"""

from sqlalchemy.orm import Session

from ..errors import CoreError, NotAssigned, PersonNotFound, ServiceResult, UnitNotFound
from ..models import MembershipRole
from ..schemas.membership import MembershipResponse
from ..utils.db_helpers import STORE_FAILURES, store_errors
from ..utils.logging_config import get_logger
from .identity_resolver import MAX_REGISTRY_ID
from .stores import REGISTRY, MembershipStore, RegistryPersonStore, RegistryUnitStore

logger = get_logger(__name__)


def in_registry_range(value: int) -> bool:
    """Registry keys are 32-bit; anything wider cannot name a row"""
    return 0 < value <= MAX_REGISTRY_ID


class MembershipService:
    def __init__(self, db: Session):
        self.db = db
        self.people = RegistryPersonStore(db)
        self.units = RegistryUnitStore(db)
        self.memberships = MembershipStore(db)

    def assign(self, person_id: int, unit_id: int, role: MembershipRole) -> ServiceResult:
        """
        Make ``person_id`` a member of ``unit_id`` with ``role``.

        Re-assigning overwrites the role; exactly one row per (person, unit)
        and one per (person, association) exists afterwards. Any failure
        rolls back both writes.
        """
        role = MembershipRole(role)
        try:
            if not in_registry_range(person_id) or self.people.find_by_numeric_id(person_id) is None:
                raise PersonNotFound(f"Person {person_id} not found")
            unit = self.units.find_by_id(unit_id) if in_registry_range(unit_id) else None
            if unit is None:
                raise UnitNotFound(f"Unit {unit_id} not found")

            membership, created = self.memberships.upsert_membership(person_id, unit_id, role.value)
            _, association_created = self.memberships.find_or_create_association_membership(
                person_id, unit.association_id
            )
            self._commit()

        except CoreError as e:
            self._rollback()
            logger.info(f"Membership assignment rejected ({e.code.value}): {e.message}")
            return ServiceResult.from_error(e)
        except Exception:
            self._rollback()
            raise

        logger.membership_assigned(person_id, unit_id, role.value, association_created)
        return ServiceResult.ok(
            MembershipResponse(
                user_id=person_id,
                unit_id=unit_id,
                association_id=unit.association_id,
                role=role,
                membership_created=created,
                association_membership_created=association_created,
            ),
            "Unit assigned to user" if created else "User role updated",
        )

    def remove(self, person_id: int, unit_id: int) -> ServiceResult:
        try:
            membership = None
            if in_registry_range(person_id) and in_registry_range(unit_id):
                membership = self.memberships.find_membership(person_id, unit_id)
            if membership is None:
                raise NotAssigned()
            self.memberships.delete_membership(membership)
            self._commit()

        except CoreError as e:
            self._rollback()
            logger.info(f"Membership removal rejected ({e.code.value}): {e.message}")
            return ServiceResult.from_error(e)
        except Exception:
            self._rollback()
            raise

        logger.info(f"User {person_id} removed from unit {unit_id}")
        return ServiceResult.ok(
            MembershipResponse(user_id=person_id, unit_id=unit_id),
            "Unit removed from user",
        )

    def _commit(self) -> None:
        with store_errors(REGISTRY):
            self.db.commit()

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except STORE_FAILURES as e:
            logger.warning(f"Rollback on the registry store failed: {e}")
