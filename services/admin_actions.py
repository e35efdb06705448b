# services/admin_actions.py

"""
Admin transitions for visit and reservation requests.

Every status write is conditional on the status the transition starts from,
so two admins racing on the same request cannot both win: the loser's write
matches no row and is reported as INVALID_STATUS after a fresh read.
Reservation approval goes through the store's atomic function, which also
flips the unit's availability flag.
"""

from typing import Any, Dict, Optional

from zoneinfo import ZoneInfo

from core.config import settings
from core.errors import ErrorCode, RequestActionError
from core.logging_config import get_logger
from core.request_store import RequestStore
from models.enums import RequestKind, ReservationStatus, UserRole
from models.requests import (
    ReservationActionBody,
    ReservationRequest,
    UserProfile,
    VisitActionBody,
    VisitRequest,
)
from services.intake import parse_slot, utc_now
from services.transitions import allowed_sources, ensure_transition, parse_status

logger = get_logger("admin_actions")

NOT_FOUND_MESSAGES = {
    RequestKind.visits: "Solicitação de visita não encontrada.",
    RequestKind.reservations: "Solicitação de reserva não encontrada.",
}

CLIENT_MSG_REQUIRED = "Mensagem para o cliente é obrigatória."


def clean_message(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_client_message(value: Optional[str]) -> str:
    message = clean_message(value)
    if not message:
        raise RequestActionError(ErrorCode.INVALID_INPUT, CLIENT_MSG_REQUIRED)
    return message


class AdminTransitionService:
    def __init__(self, store: RequestStore, notifier, actor_id: Optional[str] = None):
        self.store = store
        self.notifier = notifier
        self.actor_id = actor_id or "admin"

    # ---------------------------------------------------------
    # Internal
    # ---------------------------------------------------------
    def _load(self, kind: RequestKind, request_id: str) -> Dict[str, Any]:
        row = self.store.get_request(kind, request_id)
        if not row:
            raise RequestActionError(ErrorCode.NOT_FOUND, NOT_FOUND_MESSAGES[kind])
        return row

    def _resolve_agent(self, agent_id: str) -> UserProfile:
        row = self.store.get_user(agent_id)
        if not row:
            raise RequestActionError(ErrorCode.AGENT_NOT_FOUND, "Corretor não encontrado.")
        agent = UserProfile.model_validate(row)
        if agent.role != UserRole.agent.value:
            raise RequestActionError(
                ErrorCode.INVALID_INPUT, "O usuário selecionado não é um corretor válido."
            )
        return agent

    def _write(
        self,
        kind: RequestKind,
        request_id: str,
        action: str,
        changes: Dict[str, Any],
        current: Optional[Dict[str, Any]] = None,
    ):
        """Conditional status write; on a lost race, re-read to report the real reason."""
        sources = allowed_sources(kind, action)
        current = current or self._load(kind, request_id)
        target = ensure_transition(kind, parse_status(kind, current["status"]), action)

        row = self.store.update_status(
            kind, request_id, sources, {**changes, "status": target.value}
        )
        if row is None:
            fresh = self._load(kind, request_id)
            ensure_transition(kind, parse_status(kind, fresh["status"]), action)
            raise RequestActionError(ErrorCode.INVALID_STATUS, "A solicitação já foi processada.")

        logger.info(
            f"Admin {self.actor_id} moved {kind.value} request {request_id} "
            f"from {current['status']} to {target.value}"
        )
        return current, row

    def _notify(self, hook, *args):
        try:
            hook(*args)
        except Exception as e:
            logger.error(f"Failed to queue notification: {e}", exc_info=True)

    # ---------------------------------------------------------
    # Reservations
    # ---------------------------------------------------------
    def approve_reservation(
        self,
        request_id: str,
        client_msg: Optional[str] = None,
        agent_msg: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> ReservationRequest:
        current = self._load(RequestKind.reservations, request_id)
        ensure_transition(
            RequestKind.reservations, parse_status(RequestKind.reservations, current["status"]), "approve"
        )
        if not current.get("unit_id"):
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Informações da unidade não encontradas.")

        if agent_id:
            self._resolve_agent(agent_id)

        outcome, row = self.store.approve_reservation(
            request_id, agent_id, clean_message(client_msg), clean_message(agent_msg)
        )

        if outcome == "not_found":
            raise RequestActionError(ErrorCode.NOT_FOUND, NOT_FOUND_MESSAGES[RequestKind.reservations])
        if outcome == "invalid_status":
            raise RequestActionError(ErrorCode.INVALID_STATUS, "A solicitação já foi processada.")
        if outcome == "unit_unavailable":
            logger.info(
                f"Approval of reservation {request_id} refused: unit {current['unit_id']} no longer available"
            )
            raise RequestActionError(
                ErrorCode.UNIT_UNAVAILABLE, "A unidade selecionada já não está mais disponível."
            )
        if outcome != "approved" or row is None:
            raise RuntimeError(f"approve_reservation_request returned unexpected outcome {outcome!r}")

        reservation = ReservationRequest.model_validate(row)
        logger.info(
            f"Admin {self.actor_id} approved reservation {request_id}; unit {reservation.unit_id} is now unavailable"
        )
        self._notify(self.notifier.reservation_decided, reservation)
        return reservation

    def deny_reservation(
        self, request_id: str, client_msg: Optional[str], agent_msg: Optional[str] = None
    ) -> ReservationRequest:
        message = require_client_message(client_msg)
        _, row = self._write(
            RequestKind.reservations,
            request_id,
            "deny",
            {"client_msg": message, "agent_msg": clean_message(agent_msg)},
        )
        reservation = ReservationRequest.model_validate(row)
        self._notify(self.notifier.reservation_decided, reservation)
        return reservation

    def complete_reservation(self, request_id: str) -> ReservationRequest:
        # Unit stays unavailable: the sale/lease was already reflected at approval
        _, row = self._write(RequestKind.reservations, request_id, "complete", {})
        reservation = ReservationRequest.model_validate(row)
        self._notify(self.notifier.reservation_decided, reservation)
        return reservation

    def cancel_reservation(
        self,
        request_id: str,
        client_msg: Optional[str] = None,
        agent_msg: Optional[str] = None,
    ) -> ReservationRequest:
        changes = {}
        if clean_message(client_msg):
            changes["client_msg"] = clean_message(client_msg)
        if clean_message(agent_msg):
            changes["agent_msg"] = clean_message(agent_msg)

        # Unit availability is not restored here, even for an approved
        # reservation. Re-listing the unit is a manual catalog operation.
        previous, row = self._write(RequestKind.reservations, request_id, "cancel", changes)
        if previous["status"] == ReservationStatus.approved.value:
            logger.warning(
                f"Approved reservation {request_id} cancelled; unit {previous['unit_id']} "
                "remains unavailable until re-listed"
            )

        reservation = ReservationRequest.model_validate(row)
        self._notify(self.notifier.reservation_decided, reservation)
        return reservation

    # ---------------------------------------------------------
    # Visits
    # ---------------------------------------------------------
    def approve_visit(
        self,
        request_id: str,
        scheduled_slot: Optional[str],
        agent_id: Optional[str],
        agent_msg: Optional[str] = None,
    ) -> VisitRequest:
        if not scheduled_slot or not agent_id:
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Horário e corretor são obrigatórios.")
        try:
            slot = parse_slot(scheduled_slot, ZoneInfo(settings.TIMEZONE), utc_now())
        except (TypeError, ValueError):
            raise RequestActionError(ErrorCode.INVALID_INPUT, "Horário inválido.")

        current = self._load(RequestKind.visits, request_id)
        ensure_transition(RequestKind.visits, parse_status(RequestKind.visits, current["status"]), "approve")
        self._resolve_agent(agent_id)

        _, row = self._write(
            RequestKind.visits,
            request_id,
            "approve",
            {
                "scheduled_slot": slot.isoformat(),
                "assigned_agent_id": agent_id,
                "agent_msg": clean_message(agent_msg),
                "client_msg": None,
            },
            current=current,
        )
        visit = VisitRequest.model_validate(row)
        self._notify(self.notifier.visit_approved, visit)
        return visit

    def deny_visit(
        self, request_id: str, client_msg: Optional[str], agent_msg: Optional[str] = None
    ) -> VisitRequest:
        message = require_client_message(client_msg)
        previous, row = self._write(
            RequestKind.visits,
            request_id,
            "deny",
            {
                "client_msg": message,
                "agent_msg": clean_message(agent_msg),
                "scheduled_slot": None,
                "assigned_agent_id": None,
            },
        )
        visit = VisitRequest.model_validate(row)
        agents = [previous["assigned_agent_id"]] if previous.get("assigned_agent_id") else []
        self._notify(self.notifier.visit_denied, visit, agents)
        return visit

    # ---------------------------------------------------------
    # HTTP action bodies
    # ---------------------------------------------------------
    def apply_visit_action(self, request_id: str, body: VisitActionBody) -> str:
        if body.action == "approve":
            self.approve_visit(request_id, body.scheduled_slot, body.agent_id, body.agent_msg)
            return "Visita aprovada com sucesso"
        if body.action == "deny":
            self.deny_visit(request_id, body.client_msg, body.agent_msg)
            return "Visita negada com sucesso"
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Ação inválida.")

    def apply_reservation_action(self, request_id: str, body: ReservationActionBody) -> str:
        if body.action == "approve":
            self.approve_reservation(request_id, body.client_msg, body.agent_msg, body.agent_id)
            return "Reserva aprovada com sucesso"
        if body.action == "deny":
            self.deny_reservation(request_id, body.client_msg, body.agent_msg)
            return "Reserva negada com sucesso"
        if body.action == "complete":
            self.complete_reservation(request_id)
            return "Reserva concluída com sucesso"
        if body.action == "cancel":
            self.cancel_reservation(request_id, body.client_msg, body.agent_msg)
            return "Reserva cancelada com sucesso"
        raise RequestActionError(ErrorCode.INVALID_INPUT, "Ação inválida.")
