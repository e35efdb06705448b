# routers/requests.py

from fastapi import APIRouter, Depends

from dependencies.auth import get_current_user, CurrentUser
from dependencies.services import get_intake_service
from models.requests import ReservationRequestCreate, VisitRequestCreate
from services.intake import RequestIntakeService

router = APIRouter(
    prefix="/requests",
    tags=["Requests"],
)


@router.post("/visit")
def create_visit_request(
    payload: VisitRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    intake: RequestIntakeService = Depends(get_intake_service),
):
    """
    Ask to visit a property.

    - Every slot must fall between tomorrow 00:00 and the end of the
      visit window (14 days by default).
    - A client may hold only one pending/approved visit per property (409).
    """
    property_id, unit_id = payload.target_ids()
    request_id = intake.submit_visit_request(
        current_user.id, property_id, unit_id, payload.requested_slots
    )
    return {"success": True, "id": request_id, "message": "Visit requested successfully"}


@router.post("/reservation")
def create_reservation_request(
    payload: ReservationRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    intake: RequestIntakeService = Depends(get_intake_service),
):
    """
    Ask to reserve a unit.

    Refused with 409 when the client already has a live reservation for the
    unit, or when the unit has already been reserved (approved) by someone.
    """
    property_id, unit_id = payload.target_ids()
    request_id = intake.submit_reservation_request(
        current_user.id, property_id, unit_id, payload.client_msg
    )
    return {"success": True, "id": request_id, "message": "Reservation requested successfully"}
