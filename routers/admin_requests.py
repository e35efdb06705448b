# routers/admin_requests.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.config import settings
from core.request_store import RequestStore
from dependencies.auth import require_admin, CurrentUser
from dependencies.services import get_admin_service, get_request_store
from models.enums import RequestKind
from models.requests import AdminRequestPage, ReservationActionBody, VisitActionBody
from services.admin_actions import AdminTransitionService
from services.listings import list_admin_requests

router = APIRouter(
    prefix="/admin/requests",
    tags=["Admin Requests"],
)


@router.get("", response_model=AdminRequestPage, response_model_by_alias=True)
def list_requests(
    type: Optional[str] = Query("visits", description="visits | reservations"),
    status: Optional[str] = Query(None, description="Filter by status"),
    page: int = Query(1, description="1-based page number"),
    admin: CurrentUser = Depends(require_admin),
    store: RequestStore = Depends(get_request_store),
):
    """Admin queue of requests, newest first. Unknown ?type falls back to visits."""
    kind = RequestKind.reservations if type == "reservations" else RequestKind.visits
    return list_admin_requests(store, kind, status, page, settings.ADMIN_REQUESTS_PAGE_SIZE)


@router.post("/visits/{request_id}/action")
def act_on_visit(
    request_id: str,
    body: VisitActionBody,
    service: AdminTransitionService = Depends(get_admin_service),
):
    """
    Approve or deny a pending visit request.

    - approve: `scheduledSlot` and `agentId` are required
    - deny: `clientMsg` is required
    """
    return {"message": service.apply_visit_action(request_id, body)}


@router.post("/reservations/{request_id}/action")
def act_on_reservation(
    request_id: str,
    body: ReservationActionBody,
    service: AdminTransitionService = Depends(get_admin_service),
):
    """
    Move a reservation request through its lifecycle.

    approve (pending → approved, unit becomes unavailable),
    deny (pending → denied, `clientMsg` required),
    complete (approved → completed),
    cancel (pending/approved → cancelled; unit availability is NOT restored).
    """
    return {"message": service.apply_reservation_action(request_id, body)}
