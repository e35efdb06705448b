# routers/units.py

from fastapi import APIRouter, Depends

from core.request_store import RequestStore
from dependencies.services import get_request_store
from services.listings import approved_visit_slots

router = APIRouter(
    prefix="/properties",
    tags=["Units"],
)


# -------------------------------------------------------------
# GET /properties/{property_id}/units/{unit_id}/approved-visits
# Public: the storefront greys out slots already taken
# -------------------------------------------------------------
@router.get("/{property_id}/units/{unit_id}/approved-visits")
def list_approved_visit_slots(
    property_id: str,
    unit_id: str,
    store: RequestStore = Depends(get_request_store),
):
    return {"scheduledSlots": approved_visit_slots(store, property_id, unit_id)}
