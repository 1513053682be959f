from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..models import MembershipRole
from ..schemas.membership import MembershipAssign
from ..services import MembershipService
from ..utils.dependencies import require_token
from ..utils.rate_limiter import get_rate_limit, limiter
from .common import get_membership_service, result_response

router = APIRouter(
    prefix="/api/registry/users",
    tags=["Memberships"],
    dependencies=[Depends(require_token)]
)


@router.post("/{user_id}/units/{unit_id}")
@limiter.limit(get_rate_limit("membership_write"))
async def assign_unit(
    request: Request,
    user_id: int,
    unit_id: int,
    payload: Optional[MembershipAssign] = None,
    service: MembershipService = Depends(get_membership_service)
):
    """Assign a unit to a user (or change the role held there)"""
    role = payload.role if payload else MembershipRole.RESIDENT
    return result_response(service.assign(user_id, unit_id, role))


@router.delete("/{user_id}/units/{unit_id}")
@limiter.limit(get_rate_limit("membership_write"))
async def remove_unit(
    request: Request,
    user_id: int,
    unit_id: int,
    service: MembershipService = Depends(get_membership_service)
):
    return result_response(service.remove(user_id, unit_id))
