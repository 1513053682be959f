from fastapi import APIRouter, Depends, Request, status

from ..errors import CoreError, ServiceResult
from ..schemas.booking import BookingCreate, BookingResponse, BookingUpdate
from ..services import BookingAdmissionService, PersonIdentifier
from ..utils.dependencies import require_token
from ..utils.rate_limiter import get_rate_limit, limiter
from .common import get_admission_service, result_response

router = APIRouter(
    prefix="/api/bookings",
    tags=["Bookings"],
    dependencies=[Depends(require_token)]
)


def booker_identifier(payload: BookingCreate):
    """Explicit kind wins; otherwise emails are recognised by '@' and ids by shape"""
    if payload.booker_kind is not None:
        return PersonIdentifier.of_kind(payload.booker_kind, payload.booker)
    if "@" in payload.booker:
        return PersonIdentifier.email(payload.booker)
    return payload.booker


def booking_result(result: ServiceResult, success_status: int = status.HTTP_200_OK):
    data = BookingResponse.model_validate(result.data) if result.success and result.data is not None else None
    return result_response(result, data=data, success_status=success_status)


@router.post("")
@limiter.limit(get_rate_limit("booking_write"))
async def create_booking(
    request: Request,
    payload: BookingCreate,
    service: BookingAdmissionService = Depends(get_admission_service)
):
    try:
        booker = booker_identifier(payload)
    except CoreError as e:
        return result_response(ServiceResult.from_error(e))

    outcome = service.admit(
        booker,
        payload.amenity_id,
        payload.booking_date,
        payload.time_start,
        payload.time_end,
        association_id=payload.association_id,
        notes=payload.notes,
    )
    return booking_result(outcome, success_status=status.HTTP_201_CREATED)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    service: BookingAdmissionService = Depends(get_admission_service)
):
    return booking_result(service.get_booking(booking_id))


@router.patch("/{booking_id}")
@limiter.limit(get_rate_limit("booking_write"))
async def update_booking(
    request: Request,
    booking_id: str,
    payload: BookingUpdate,
    service: BookingAdmissionService = Depends(get_admission_service)
):
    """Partial update; only the fields present in the body are applied"""
    changes = payload.model_dump(exclude_unset=True)
    return booking_result(service.update_booking(booking_id, changes))


@router.delete("/{booking_id}")
@limiter.limit(get_rate_limit("booking_write"))
async def delete_booking(
    request: Request,
    booking_id: str,
    service: BookingAdmissionService = Depends(get_admission_service)
):
    return result_response(service.delete_booking(booking_id))
