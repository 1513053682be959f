"""
Identity Resolver
=================
Finds a person across the community and registry stores and, when a
registry person needs to act in the community store (to book an amenity),
materializes a community counterpart keyed by email.

Identifier shapes:
- 24 hexadecimal characters -> community store id
- base-10 integer string     -> registry store id
- anything else              -> rejected as InvalidIdentifier
A 24-digit decimal string matches both shapes and is looked up in both.
"""

import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import (
    CoreError, EmailTaken, IdentityNotFound, InvalidIdentifier, ReasonCode,
    ServiceResult,
)
from ..models import CommunityPerson, Origin, RegistryPerson
from ..schemas.person import PersonView, ResolvedPerson, UnitRoleView
from ..utils.logging_config import get_logger
from ..utils.security import hash_password
from .stores import CommunityPersonStore, RegistryPersonStore

logger = get_logger(__name__)

COMMUNITY_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
REGISTRY_ID_PATTERN = re.compile(r"^[0-9]+$")

# Registry ids are 32-bit integer keys; anything larger cannot exist there
MAX_REGISTRY_ID = 2 ** 31 - 1


class IdentifierKind(str, enum.Enum):
    COMMUNITY_ID = "community_id"
    REGISTRY_ID = "registry_id"
    EMAIL = "email"


@dataclass(frozen=True)
class PersonIdentifier:
    """An identifier together with the store it addresses"""
    kind: IdentifierKind
    value: str

    @classmethod
    def community(cls, value: str) -> "PersonIdentifier":
        value = str(value).strip()
        if not COMMUNITY_ID_PATTERN.match(value):
            raise InvalidIdentifier(f'"{value}" is not a valid community id')
        return cls(IdentifierKind.COMMUNITY_ID, value.lower())

    @classmethod
    def registry(cls, value: Union[int, str]) -> "PersonIdentifier":
        value = str(value).strip()
        if not REGISTRY_ID_PATTERN.match(value):
            raise InvalidIdentifier(f'"{value}" is not a valid registry id')
        return cls(IdentifierKind.REGISTRY_ID, value)

    @classmethod
    def email(cls, value: str) -> "PersonIdentifier":
        value = str(value).strip()
        if "@" not in value:
            raise InvalidIdentifier(f'"{value}" is not an email address')
        return cls(IdentifierKind.EMAIL, value.lower())

    @classmethod
    def of_kind(cls, kind: IdentifierKind, value: str) -> "PersonIdentifier":
        builders = {
            IdentifierKind.COMMUNITY_ID: cls.community,
            IdentifierKind.REGISTRY_ID: cls.registry,
            IdentifierKind.EMAIL: cls.email,
        }
        return builders[IdentifierKind(kind)](value)

    @property
    def registry_key(self) -> Optional[int]:
        """Integer key for registry lookups, None when out of the key range."""
        number = int(self.value)
        if number > MAX_REGISTRY_ID:
            return None
        return number


Identifier = Union[PersonIdentifier, str, int]


def classify_identifier(raw: Identifier) -> List[PersonIdentifier]:
    """
    Decide which store(s) a bare identifier addresses.

    Raises:
        InvalidIdentifier: the value has neither shape
    """
    if isinstance(raw, PersonIdentifier):
        return [raw]
    if isinstance(raw, bool):
        raise InvalidIdentifier(f'"{raw}" is not a valid identifier')
    if isinstance(raw, int):
        if raw < 0:
            raise InvalidIdentifier(f'"{raw}" is not a valid registry id')
        return [PersonIdentifier.registry(raw)]
    if not isinstance(raw, str):
        raise InvalidIdentifier(f'"{raw!r}" is not a valid identifier')

    value = raw.strip()
    matches = []
    if COMMUNITY_ID_PATTERN.match(value):
        matches.append(PersonIdentifier(IdentifierKind.COMMUNITY_ID, value.lower()))
    if REGISTRY_ID_PATTERN.match(value):
        matches.append(PersonIdentifier(IdentifierKind.REGISTRY_ID, value))

    if not matches:
        raise InvalidIdentifier(f'"{raw}" is neither a community id nor a registry id')
    return matches


def community_view(person: CommunityPerson) -> PersonView:
    return PersonView(
        id=person.id,
        names=person.names,
        last_names=person.last_names,
        email=person.email,
        origin=Origin.COMMUNITY,
        units=[
            UnitRoleView(
                id=assignment.unit_id,
                name=assignment.unit.name if assignment.unit else None,
                role=assignment.role,
            )
            for assignment in person.unit_assignments
        ],
    )


def registry_view(person: RegistryPerson) -> PersonView:
    return PersonView(
        id=str(person.id),
        names=person.names,
        last_names=person.last_names,
        email=person.email,
        origin=Origin.REGISTRY,
        units=[
            UnitRoleView(
                id=str(membership.unit_id),
                name=membership.unit.name if membership.unit else None,
                role=membership.role,
            )
            for membership in person.unit_memberships
        ],
    )


class IdentityResolver:
    """
    Cross-store person lookup and materialization.

    The only component allowed to create person records in either store.
    """

    def __init__(self, community_db: Session, registry_db: Session):
        self.community_people = CommunityPersonStore(community_db)
        self.registry_people = RegistryPersonStore(registry_db)

    # ==================== Lookup ====================

    def resolve(self, identifier: Identifier) -> ResolvedPerson:
        """
        Look a person up in whichever store(s) the identifier addresses.

        Emails are looked up in both stores. Never writes.

        Raises:
            InvalidIdentifier, StoreUnavailable
        """
        community: Optional[CommunityPerson] = None
        registry: Optional[RegistryPerson] = None

        for ident in classify_identifier(identifier):
            if ident.kind == IdentifierKind.COMMUNITY_ID:
                community = community or self.community_people.find_by_opaque_id(ident.value)
            elif ident.kind == IdentifierKind.REGISTRY_ID:
                key = ident.registry_key
                if key is not None:
                    registry = registry or self.registry_people.find_by_numeric_id(key)
            else:
                community = community or self.community_people.find_by_email(ident.value)
                registry = registry or self.registry_people.find_by_email(ident.value)

        return ResolvedPerson(
            community=community_view(community) if community else None,
            registry=registry_view(registry) if registry else None,
        )

    def resolve_person(self, identifier: Identifier) -> ServiceResult:
        try:
            resolved = self.resolve(identifier)
        except CoreError as e:
            return ServiceResult.from_error(e)

        if not resolved.found:
            return ServiceResult.fail(ReasonCode.NOT_FOUND, "Person not found in any store")

        if resolved.found_in_both:
            message = "Person found in both stores"
        else:
            message = f"Person found in the {resolved.views[0].origin.value} store"
        return ServiceResult.ok(resolved, message)

    def list_people(self, limit: Optional[int] = None) -> ServiceResult:
        """Persons of both stores with their units, at most ``limit`` per store."""
        limit = limit or settings.people_list_limit
        try:
            people = [community_view(p) for p in self.community_people.list(limit)]
            people.extend(registry_view(p) for p in self.registry_people.list(limit))
        except CoreError as e:
            return ServiceResult.from_error(e)
        return ServiceResult.ok(people, f"{len(people)} persons")

    # ==================== Materialization ====================

    def ensure_counterpart(self, registry_id: int) -> CommunityPerson:
        """
        Return the community person sharing the registry person's email,
        creating it from the registry record when missing.

        Names, last names, email and password hash are copied once and never
        synchronized afterwards. The new record is committed on its own,
        before (and independently of) whatever the caller does next.

        Raises:
            IdentityNotFound: no registry person with this id
            StoreUnavailable
        """
        source = None
        if 0 <= registry_id <= MAX_REGISTRY_ID:
            source = self.registry_people.find_by_numeric_id(registry_id)
        if source is None:
            raise IdentityNotFound(f"Person {registry_id} not found in the registry store")

        existing = self.community_people.find_by_email(source.email)
        if existing is not None:
            return existing

        person, created = self.community_people.create(
            names=source.names,
            last_names=source.last_names,
            email=source.email,
            password=source.password,
        )
        if created:
            logger.person_materialized(person.id, source.id, person.email)
        return person

    def materialize(self, registry_id: int) -> ServiceResult:
        try:
            person = self.ensure_counterpart(registry_id)
        except CoreError as e:
            return ServiceResult.from_error(e)
        return ServiceResult.ok(community_view(person))

    def locate_booker(self, identifier: Identifier) -> CommunityPerson:
        """
        Community person who will own a booking.

        Registry identities (by id or by an email only the registry knows)
        are materialized first.

        Raises:
            IdentityNotFound, InvalidIdentifier, StoreUnavailable
        """
        for ident in classify_identifier(identifier):
            if ident.kind == IdentifierKind.COMMUNITY_ID:
                person = self.community_people.find_by_opaque_id(ident.value)
                if person is not None:
                    return person
            elif ident.kind == IdentifierKind.REGISTRY_ID:
                key = ident.registry_key
                if key is None:
                    continue
                try:
                    return self.ensure_counterpart(key)
                except IdentityNotFound:
                    continue
            else:
                person = self.community_people.find_by_email(ident.value)
                if person is not None:
                    return person
                source = self.registry_people.find_by_email(ident.value)
                if source is not None:
                    return self.ensure_counterpart(source.id)

        raise IdentityNotFound()

    # ==================== Registration ====================

    def register_person(
        self,
        origin: Origin,
        names: str,
        last_names: str,
        email: str,
        password: str
    ) -> ServiceResult:
        """Create a person in one store. The password is stored as a bcrypt hash."""
        store = self.community_people if Origin(origin) == Origin.COMMUNITY else self.registry_people
        to_view = community_view if Origin(origin) == Origin.COMMUNITY else registry_view

        try:
            if store.find_by_email(email) is not None:
                raise EmailTaken()
            person, created = store.create(
                names=names.strip(),
                last_names=last_names.strip(),
                email=email,
                password=hash_password(password),
            )
            if not created:
                raise EmailTaken()
        except CoreError as e:
            return ServiceResult.from_error(e)

        logger.info(f"Registered {Origin(origin).value} person {person.id}")
        return ServiceResult.ok(to_view(person), "Person created")
