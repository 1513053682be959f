"""
Cross-store endpoints: person lookup over both stores and booking on behalf
of a registry person.
"""

from fastapi import APIRouter, Depends, Query, Request, status

from ..errors import CoreError, ServiceResult
from ..schemas.booking import BookingResponse, CombinedBookingCreate
from ..schemas.person import PersonCreate
from ..services import BookingAdmissionService, IdentityResolver, PersonIdentifier
from ..utils.dependencies import require_token
from ..utils.rate_limiter import get_rate_limit, limiter
from .common import get_admission_service, get_identity_resolver, result_response

router = APIRouter(
    prefix="/api/combined",
    tags=["Combined"],
    dependencies=[Depends(require_token)]
)


@router.get("/users")
async def list_users(
    limit: int = Query(None, ge=1, le=1000),
    resolver: IdentityResolver = Depends(get_identity_resolver)
):
    """Persons of both stores with their units"""
    return result_response(resolver.list_people(limit))


@router.post("/users")
@limiter.limit(get_rate_limit("membership_write"))
async def register_user(
    request: Request,
    payload: PersonCreate,
    resolver: IdentityResolver = Depends(get_identity_resolver)
):
    result = resolver.register_person(
        payload.origin,
        payload.names,
        payload.last_names,
        payload.email,
        payload.password,
    )
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/users/id/{identifier}")
async def get_user_by_id(
    identifier: str,
    resolver: IdentityResolver = Depends(get_identity_resolver)
):
    """
    Look a person up by id in whichever store its shape points to.

    24 hex characters address the community store, digits the registry store.
    """
    return result_response(resolver.resolve_person(identifier))


@router.get("/users/email/{email}")
async def get_user_by_email(
    email: str,
    resolver: IdentityResolver = Depends(get_identity_resolver)
):
    """Look a person up by email in both stores"""
    try:
        identifier = PersonIdentifier.email(email)
    except CoreError as e:
        return result_response(ServiceResult.from_error(e))
    return result_response(resolver.resolve_person(identifier))


@router.post("/booking/{registry_user_id}/{amenity_id}")
@limiter.limit(get_rate_limit("booking_write"))
async def book_amenity_for_registry_user(
    request: Request,
    registry_user_id: str,
    amenity_id: str,
    payload: CombinedBookingCreate,
    service: BookingAdmissionService = Depends(get_admission_service)
):
    """
    Book an amenity for a registry person.

    The person gets a community counterpart on first use (matched by email).
    """
    try:
        booker = PersonIdentifier.registry(registry_user_id)
    except CoreError as e:
        return result_response(ServiceResult.from_error(e))

    outcome = service.admit(
        booker,
        amenity_id,
        payload.booking_date,
        payload.time_start,
        payload.time_end,
        notes=payload.notes,
    )
    data = BookingResponse.model_validate(outcome.data) if outcome.success else None
    return result_response(outcome, data=data, success_status=status.HTTP_201_CREATED)
