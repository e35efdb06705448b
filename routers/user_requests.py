# routers/user_requests.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.config import settings
from core.request_store import RequestStore
from dependencies.auth import get_current_user, CurrentUser
from dependencies.services import get_cancellation_service, get_request_store
from models.enums import RequestKind
from models.requests import ClientRequestPage
from services.cancellation import ClientCancellationService
from services.listings import list_client_requests

router = APIRouter(
    prefix="/user/requests",
    tags=["My Requests"],
)

INVALID_TYPE = "Invalid type parameter. Use 'visits' or 'reservations'."


def parse_kind(value: Optional[str]) -> RequestKind:
    if value not in RequestKind.list():
        raise HTTPException(400, INVALID_TYPE)
    return RequestKind(value)


@router.get("", response_model=ClientRequestPage, response_model_by_alias=True)
def list_my_requests(
    type: Optional[str] = Query(None, description="visits | reservations"),
    cursor: Optional[str] = Query(None, description="Offset returned as nextCursor"),
    current_user: CurrentUser = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
):
    """List the caller's own requests, newest first."""
    kind = parse_kind(type)
    return list_client_requests(store, current_user.id, kind, cursor, settings.USER_REQUESTS_PAGE_SIZE)


@router.delete("/{request_id}")
def cancel_my_request(
    request_id: str,
    type: Optional[str] = Query(None, description="visits | reservations"),
    current_user: CurrentUser = Depends(get_current_user),
    cancellation: ClientCancellationService = Depends(get_cancellation_service),
):
    """Withdraw one of the caller's requests. Only pending requests can be withdrawn."""
    kind = parse_kind(type)
    cancellation.cancel_own_request(current_user.id, request_id, kind)
    return {"success": True}
