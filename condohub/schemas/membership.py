from typing import Optional

from pydantic import BaseModel

from ..models.membership import MembershipRole


class MembershipAssign(BaseModel):
    role: MembershipRole = MembershipRole.RESIDENT


class MembershipResponse(BaseModel):
    user_id: int
    unit_id: int
    association_id: Optional[int] = None
    role: Optional[MembershipRole] = None
    membership_created: bool = False
    association_membership_created: bool = False
