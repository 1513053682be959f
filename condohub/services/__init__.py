# Services package
from .stores import (
    CommunityPersonStore, RegistryPersonStore, AmenityStore, BookingStore,
    RegistryUnitStore, MembershipStore,
)
from .identity_resolver import (
    IdentityResolver, IdentifierKind, PersonIdentifier, classify_identifier,
)
from .availability import AvailabilityChecker, OverlapDetector
from .booking_admission import AdmissionOutcome, AdmissionState, BookingAdmissionService
from .membership_service import MembershipService

__all__ = [
    "CommunityPersonStore", "RegistryPersonStore", "AmenityStore", "BookingStore",
    "RegistryUnitStore", "MembershipStore",
    "IdentityResolver", "IdentifierKind", "PersonIdentifier", "classify_identifier",
    "AvailabilityChecker", "OverlapDetector",
    "AdmissionOutcome", "AdmissionState", "BookingAdmissionService",
    "MembershipService",
]
