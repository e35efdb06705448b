# services/listings.py

"""Read-side views over the request tables (client history, admin queue, taken slots)."""

import math
from typing import Optional

from core.errors import ErrorCode, RequestActionError
from core.request_store import RequestStore
from models.enums import RequestKind
from models.requests import (
    AdminRequestPage,
    ClientRequestPage,
    ReservationRequest,
    VisitRequest,
)
from services.transitions import STATUS_TYPES

MODELS = {
    RequestKind.visits: VisitRequest,
    RequestKind.reservations: ReservationRequest,
}


def serialize(kind: RequestKind, row: dict) -> dict:
    return MODELS[kind].model_validate(row).model_dump(mode="json", by_alias=True)


def parse_cursor(cursor: Optional[str]) -> int:
    if cursor in (None, ""):
        return 0
    try:
        value = int(cursor)
    except (TypeError, ValueError):
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Invalid cursor.")
    if value < 0:
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Invalid cursor.")
    return value


def list_client_requests(
    store: RequestStore, client_id: str, kind: RequestKind, cursor: Optional[str], page_size: int
) -> ClientRequestPage:
    offset = parse_cursor(cursor)
    rows = store.list_client_requests(kind, client_id, offset, page_size)
    next_cursor = offset + len(rows) if len(rows) == page_size else None
    return ClientRequestPage(requests=[serialize(kind, r) for r in rows], next_cursor=next_cursor)


def list_admin_requests(
    store: RequestStore, kind: RequestKind, status: Optional[str], page: int, page_size: int
) -> AdminRequestPage:
    if status:
        status = status.lower()
        if status not in STATUS_TYPES[kind].list():
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Status inválido")

    page = max(page, 1)
    offset = (page - 1) * page_size
    rows, total = store.list_requests(kind, status, offset, page_size)
    return AdminRequestPage(
        requests=[serialize(kind, r) for r in rows],
        total=total,
        total_pages=max(1, math.ceil(total / page_size)),
    )


def approved_visit_slots(store: RequestStore, property_id: str, unit_id: str):
    return store.approved_visit_slots(property_id, unit_id)
