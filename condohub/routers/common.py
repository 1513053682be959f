"""
Shared pieces of the HTTP layer: service providers and the mapping from
reason codes to status codes.
"""

from datetime import date
from typing import Any, Callable, Optional

from fastapi import Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_community_db, get_registry_db
from ..errors import ReasonCode, ServiceResult
from ..schemas.common import ServiceResponse
from ..services import BookingAdmissionService, IdentityResolver, MembershipService

STATUS_BY_REASON = {
    ReasonCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.IDENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.PERSON_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.UNIT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.NOT_ASSIGNED: status.HTTP_404_NOT_FOUND,
    ReasonCode.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ReasonCode.INVALID_TIME_RANGE: status.HTTP_400_BAD_REQUEST,
    ReasonCode.NOT_BOOKABLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ReasonCode.OUTSIDE_HOURS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ReasonCode.DATE_IN_PAST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ReasonCode.TIME_CONFLICT: status.HTTP_409_CONFLICT,
    ReasonCode.EMAIL_TAKEN: status.HTTP_409_CONFLICT,
    ReasonCode.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def result_response(
    result: ServiceResult,
    data: Optional[Any] = None,
    success_status: int = status.HTTP_200_OK
) -> JSONResponse:
    """Render a ServiceResult as the ``{success, data, error, message}`` envelope"""
    body = ServiceResponse(
        success=result.success,
        data=(data if data is not None else result.data) if result.success else None,
        error=result.error,
        message=result.message,
    )
    status_code = success_status if result.success else STATUS_BY_REASON.get(
        result.error, status.HTTP_400_BAD_REQUEST
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def get_clock(request: Request) -> Callable[[], date]:
    """Today's date provider; tests pin it through ``app.state.clock``"""
    return getattr(request.app.state, "clock", date.today)


def get_identity_resolver(
    community_db: Session = Depends(get_community_db),
    registry_db: Session = Depends(get_registry_db)
) -> IdentityResolver:
    return IdentityResolver(community_db, registry_db)


def get_admission_service(
    request: Request,
    community_db: Session = Depends(get_community_db),
    registry_db: Session = Depends(get_registry_db)
) -> BookingAdmissionService:
    return BookingAdmissionService(community_db, registry_db, clock=get_clock(request))


def get_membership_service(registry_db: Session = Depends(get_registry_db)) -> MembershipService:
    return MembershipService(registry_db)
