# Models package
from .person import CommunityPerson, RegistryPerson, Origin, new_object_id, normalize_email
from .association import CommunityAssociation, RegistryAssociation
from .membership import UnitMembership, AssociationMembership, MembershipRole
from .unit import CommunityUnit, CommunityUnitAssignment, RegistryUnit
from .amenity import Amenity
from .booking import Booking, BookingSlot

__all__ = [
    "CommunityPerson", "RegistryPerson", "Origin", "new_object_id", "normalize_email",
    "CommunityAssociation", "RegistryAssociation",
    "UnitMembership", "AssociationMembership", "MembershipRole",
    "CommunityUnit", "CommunityUnitAssignment", "RegistryUnit",
    "Amenity",
    "Booking", "BookingSlot",
]
