# services/intake.py

"""
Request intake: validates and creates visit / reservation requests.

Slot validation happens before any store access. The reservation path relies
on the store's create_reservation_request function for the dedup check, the
availability check and the insert in one transaction.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from core.config import settings
from core.errors import ErrorCode, RequestActionError
from core.logging_config import get_logger
from core.request_store import RequestStore
from models.requests import ReservationRequest, UserProfile, VisitRequest

logger = get_logger("intake")

# Storefront date picker format, e.g. "sex. 31/10-12:30" (no year)
LEGACY_SLOT = re.compile(r"^\S+\s+(\d{1,2})/(\d{1,2})-(\d{1,2}):(\d{2})$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_slot(raw, tz: ZoneInfo, now: datetime) -> datetime:
    """
    Parse a requested slot into an aware datetime.

    Accepts ISO-8601 (naive values are read in `tz`) and the legacy
    "<weekday>. DD/MM-HH:MM" form, taken in the current year (or the next one
    when that date has already passed).
    Raises ValueError for anything else.
    """
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=tz)

    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"unparseable slot: {raw!r}")

    text = raw.strip()
    match = LEGACY_SLOT.match(text)
    if match:
        day, month, hour, minute = (int(g) for g in match.groups())
        today = now.astimezone(tz).date()
        slot = datetime(today.year, month, day, hour, minute, tzinfo=tz)
        # No year in the string: a date already behind us means next year (late-December picks)
        if slot.date() < today:
            slot = datetime(today.year + 1, month, day, hour, minute, tzinfo=tz)
        return slot

    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


def visit_window(now: datetime, tz: ZoneInfo, days: int) -> Tuple[datetime, datetime]:
    """[tomorrow 00:00, tomorrow + days 00:00) in the configured timezone."""
    today: date = now.astimezone(tz).date()
    start = datetime.combine(today + timedelta(days=1), time(0, 0), tzinfo=tz)
    end = datetime.combine(today + timedelta(days=days + 1), time(0, 0), tzinfo=tz)
    return start, end


def validate_slots(raw_slots: Iterable, now: datetime, tz: ZoneInfo, days: int) -> List[datetime]:
    slots = list(raw_slots or [])
    if not slots:
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Selecione ao menos um horário.")

    start, end = visit_window(now, tz, days)
    parsed = []
    for raw in slots:
        try:
            slot = parse_slot(raw, tz, now)
        except (TypeError, ValueError):
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Horário inválido.")
        if slot < start or slot >= end:
            raise RequestActionError(
                ErrorCode.INVALID_INPUT,
                f"Os horários devem estar entre amanhã e os próximos {days} dias.",
            )
        parsed.append(slot)
    return parsed


class RequestIntakeService:
    def __init__(self, store: RequestStore, notifier, now: Callable[[], datetime] = utc_now):
        self.store = store
        self.notifier = notifier
        self.now = now
        self.tz = ZoneInfo(settings.TIMEZONE)

    def _require_client(self, client_id: str) -> UserProfile:
        row = self.store.get_user(client_id)
        if not row:
            logger.warning(f"Session user {client_id} has no profile row")
            raise RequestActionError(ErrorCode.UNAUTHORIZED, "Usuário não encontrado.")
        return UserProfile.model_validate(row)

    def _notify(self, hook, request):
        try:
            hook(request)
        except Exception as e:
            logger.error(f"Failed to queue notification for request {request.id}: {e}", exc_info=True)

    # ---------------------------------------------------------
    # Visits
    # ---------------------------------------------------------
    def submit_visit_request(
        self,
        client_id: str,
        property_id: Optional[str],
        unit_id: Optional[str],
        requested_slots: Iterable,
    ) -> str:
        if not property_id or not unit_id:
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Imóvel e unidade são obrigatórios.")

        slots = validate_slots(requested_slots, self.now(), self.tz, settings.VISIT_WINDOW_DAYS)

        if self.store.count_live_visits(client_id, property_id) > 0:
            logger.info(f"Duplicate visit request from {client_id} for property {property_id}")
            raise RequestActionError(
                ErrorCode.DUPLICATE, "Você já possui uma solicitação de visita ativa para este imóvel."
            )

        self._require_client(client_id)

        # The partial unique index rejects a concurrent twin that slipped past the count
        row = self.store.insert_visit(
            {
                "client_id": client_id,
                "property_id": property_id,
                "unit_id": unit_id,
                "requested_slots": [s.astimezone(timezone.utc).isoformat() for s in slots],
            }
        )
        if row is None:
            raise RequestActionError(
                ErrorCode.DUPLICATE, "Você já possui uma solicitação de visita ativa para este imóvel."
            )

        visit = VisitRequest.model_validate(row)
        logger.info(f"Client {client_id} requested visit {visit.id} for property {property_id}")
        self._notify(self.notifier.visit_requested, visit)
        return visit.id

    # ---------------------------------------------------------
    # Reservations
    # ---------------------------------------------------------
    def submit_reservation_request(
        self,
        client_id: str,
        property_id: Optional[str],
        unit_id: Optional[str],
        client_msg: Optional[str] = None,
    ) -> str:
        if not property_id or not unit_id:
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Imóvel e unidade são obrigatórios.")

        if self.store.count_live_reservations(client_id, unit_id) > 0:
            logger.info(f"Duplicate reservation request from {client_id} for unit {unit_id}")
            raise RequestActionError(
                ErrorCode.DUPLICATE, "Você já possui uma solicitação de reserva ativa para esta unidade."
            )

        profile = self._require_client(client_id)
        documents = dict(profile.documents)

        message = client_msg.strip() if client_msg and client_msg.strip() else None
        outcome, row = self.store.create_reservation(client_id, property_id, unit_id, message, documents)

        if outcome == "duplicate":
            raise RequestActionError(
                ErrorCode.DUPLICATE, "Você já possui uma solicitação de reserva ativa para esta unidade."
            )
        if outcome == "unit_unavailable":
            logger.info(f"Reservation for unavailable unit {unit_id} refused (client {client_id})")
            raise RequestActionError(
                ErrorCode.UNIT_UNAVAILABLE, "A unidade selecionada já não está mais disponível."
            )
        if outcome == "unit_not_found":
            raise RequestActionError(ErrorCode.NOT_FOUND, "Unidade não encontrada.")
        if outcome != "created" or row is None:
            raise RuntimeError(f"create_reservation_request returned unexpected outcome {outcome!r}")

        reservation = ReservationRequest.model_validate(row)
        logger.info(f"Client {client_id} requested reservation {reservation.id} for unit {unit_id}")
        self._notify(self.notifier.reservation_requested, reservation)
        return reservation.id
