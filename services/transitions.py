# services/transitions.py

"""
Admin transition tables for both request kinds.

Each action maps to (statuses it may start from, status it lands on).
Anything not listed is illegal and reported as INVALID_STATUS.
"""

from typing import Dict, FrozenSet, Tuple, Union

from core.errors import ErrorCode, RequestActionError
from models.enums import RequestKind, ReservationStatus, VisitStatus

Status = Union[VisitStatus, ReservationStatus]
Transitions = Dict[str, Tuple[FrozenSet[Status], Status]]


VISIT_TRANSITIONS: Transitions = {
    "approve": (frozenset({VisitStatus.pending}), VisitStatus.approved),
    "deny": (frozenset({VisitStatus.pending}), VisitStatus.denied),
}

RESERVATION_TRANSITIONS: Transitions = {
    "approve": (frozenset({ReservationStatus.pending}), ReservationStatus.approved),
    "deny": (frozenset({ReservationStatus.pending}), ReservationStatus.denied),
    "complete": (frozenset({ReservationStatus.approved}), ReservationStatus.completed),
    "cancel": (
        frozenset({ReservationStatus.pending, ReservationStatus.approved}),
        ReservationStatus.cancelled,
    ),
}

TRANSITIONS: Dict[RequestKind, Transitions] = {
    RequestKind.visits: VISIT_TRANSITIONS,
    RequestKind.reservations: RESERVATION_TRANSITIONS,
}

STATUS_TYPES = {
    RequestKind.visits: VisitStatus,
    RequestKind.reservations: ReservationStatus,
}


def parse_status(kind: RequestKind, raw) -> Status:
    """Stored status string -> enum member. Unknown values are a data error."""
    return STATUS_TYPES[kind](raw)


def actions_for(kind: RequestKind):
    return tuple(TRANSITIONS[kind])


def is_terminal(kind: RequestKind, status: Status) -> bool:
    return not any(status in sources for sources, _ in TRANSITIONS[kind].values())


def terminal_statuses(kind: RequestKind):
    return frozenset(s for s in STATUS_TYPES[kind] if is_terminal(kind, s))


def _invalid_status_message(sources: FrozenSet[Status]) -> str:
    names = {s.value for s in sources}
    if names == {"pending"}:
        return "A solicitação já foi processada."
    if names == {"approved"}:
        return "A solicitação não está aprovada."
    return "A solicitação não pode mais ser alterada."


def ensure_transition(kind: RequestKind, current: Status, action: str) -> Status:
    """Return the target status for `action`, or raise INVALID_STATUS/INVALID_INPUT."""
    table = TRANSITIONS[kind]
    if action not in table:
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Ação inválida.")

    sources, target = table[action]
    if current not in sources:
        raise RequestActionError(ErrorCode.INVALID_STATUS, _invalid_status_message(sources))
    return target


def allowed_sources(kind: RequestKind, action: str) -> FrozenSet[Status]:
    return TRANSITIONS[kind][action][0]
