# services/notices.py

"""
Turns committed lifecycle events into e-mails, plus an ops webhook post for reservations.

Every public method only queues a job on the dispatcher; recipient lookups
and SMTP happen in the background job, after the transition has committed.
"""

from html import escape
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from core.config import settings
from core.logging_config import get_logger
from core.notifications import NotificationDispatcher, send_email, send_webhook_message
from core.request_store import RequestStore
from models.requests import ReservationRequest, Unit, VisitRequest

logger = get_logger("notices")


def format_multiline(value: str) -> str:
    return escape(value).replace("\n", "<br />")


def format_slot(value: datetime) -> str:
    local = value.astimezone(ZoneInfo(settings.TIMEZONE))
    return local.strftime("%d/%m/%Y às %H:%M")


class RequestNotifier:
    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        store_factory: Callable[[], RequestStore],
        send: Callable = send_email,
        webhook: Callable = send_webhook_message,
    ):
        self.dispatcher = dispatcher
        self.store_factory = store_factory
        self.send = send
        self.webhook = webhook

    # ---------------------------------------------------------
    # Event hooks (called by the services after commit)
    # ---------------------------------------------------------
    def visit_requested(self, visit: VisitRequest):
        self.dispatcher.dispatch(self._visit_requested, visit, description=f"visit {visit.id} requested")

    def reservation_requested(self, reservation: ReservationRequest):
        self.dispatcher.dispatch(
            self._reservation_requested, reservation, description=f"reservation {reservation.id} requested"
        )
        self._post_to_ops(reservation)

    def visit_approved(self, visit: VisitRequest):
        self.dispatcher.dispatch(self._visit_approved, visit, description=f"visit {visit.id} approved")

    def visit_denied(self, visit: VisitRequest, agent_ids=()):
        self.dispatcher.dispatch(
            self._visit_denied, visit, tuple(agent_ids), description=f"visit {visit.id} denied"
        )

    def reservation_decided(self, reservation: ReservationRequest):
        """approved, denied, completed or cancelled."""
        self.dispatcher.dispatch(
            self._reservation_decided,
            reservation,
            description=f"reservation {reservation.id} {reservation.status.value}",
        )
        self._post_to_ops(reservation)

    def _post_to_ops(self, reservation: ReservationRequest):
        # Separate job so a webhook failure never re-sends the client e-mail
        self.dispatcher.dispatch(
            self.webhook,
            f"Reserva {reservation.id} (unidade {reservation.unit_id}): {reservation.status.value}",
            description=f"webhook for reservation {reservation.id}",
        )

    # ---------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------
    def _names(self, store: RequestStore, client_id: str, property_id: str, unit_id: Optional[str]):
        client = store.get_user(client_id) or {}
        prop = store.get_property(property_id) or {}
        unit_row = store.get_unit(unit_id) if unit_id else None

        unit_info = ""
        if unit_row:
            unit = Unit.model_validate(unit_row)
            unit_info = f" - Unidade {unit.identifier}"
            if unit.block:
                unit_info += f" - Bloco {unit.block}"

        return (
            client.get("email"),
            client.get("full_name") or "cliente",
            prop.get("name") or "imóvel",
            unit_info,
        )

    # ---------------------------------------------------------
    # Jobs (run on the dispatcher's scheduler thread)
    # ---------------------------------------------------------
    def _visit_requested(self, visit: VisitRequest):
        store = self.store_factory()
        _, client_name, property_name, _ = self._names(store, visit.client_id, visit.property_id, None)
        html = (
            f"<p>Nova solicitação de visita de <strong>{escape(client_name)}</strong> "
            f"para o imóvel <strong>{escape(property_name)}</strong>.</p>"
            "<p>Acesse o painel administrativo para aprovar ou negar.</p>"
        )
        self.send(
            subject="Solicitação de visita",
            body=f"Nova solicitação de visita de {client_name} para {property_name}.",
            recipients=store.list_admin_emails(),
            html_body=html,
        )

    def _reservation_requested(self, reservation: ReservationRequest):
        store = self.store_factory()
        _, client_name, property_name, unit_info = self._names(
            store, reservation.client_id, reservation.property_id, reservation.unit_id
        )
        html = (
            f"<p>Nova solicitação de reserva de <strong>{escape(client_name)}</strong> "
            f"para o imóvel <strong>{escape(property_name + unit_info)}</strong>.</p>"
            "<p>Acesse o painel administrativo para analisar os documentos.</p>"
        )
        self.send(
            subject="Solicitação de reserva",
            body=f"Nova solicitação de reserva de {client_name} para {property_name}{unit_info}.",
            recipients=store.list_admin_emails(),
            html_body=html,
        )

    def _visit_approved(self, visit: VisitRequest):
        store = self.store_factory()
        client_email, client_name, property_name, unit_info = self._names(
            store, visit.client_id, visit.property_id, visit.unit_id
        )
        agent = store.get_user(visit.assigned_agent_id) if visit.assigned_agent_id else None
        agent_name = (agent or {}).get("full_name") or ""
        slot = format_slot(visit.scheduled_slot) if visit.scheduled_slot else ""

        if client_email:
            html = (
                f"<p>Olá {escape(client_name)},</p>"
                f"<p>Boa notícia! Sua solicitação de visita ao imóvel "
                f"<strong>{escape(property_name + unit_info)}</strong> foi aprovada.</p>"
                f"<p>Horário agendado: <strong>{escape(slot)}</strong>.</p>"
                f"<p>Corretor responsável: <strong>{escape(agent_name)}</strong>.</p>"
                "<p>Em breve o corretor entrará em contato para confirmar os detalhes.</p>"
                f"<p>Equipe {escape(settings.EMAIL_FROM_NAME)}</p>"
            )
            self.send(
                subject="Visita aprovada",
                body=f"Sua visita a {property_name}{unit_info} foi aprovada para {slot}.",
                recipients=[client_email],
                html_body=html,
            )

        if agent and agent.get("email"):
            extra = ""
            if visit.agent_msg:
                extra = f"<p>Mensagem da administração:</p><p>{format_multiline(visit.agent_msg)}</p>"
            html = (
                f"<p>Olá {escape(agent_name)},</p>"
                f"<p>Você foi designado para acompanhar a visita do cliente <strong>{escape(client_name)}</strong> "
                f"ao imóvel <strong>{escape(property_name + unit_info)}</strong>.</p>"
                f"<p>Horário agendado: <strong>{escape(slot)}</strong>.</p>"
                f"{extra}"
                "<p>Por favor, entre em contato com o cliente para alinhar os próximos passos.</p>"
            )
            self.send(
                subject="Nova visita agendada",
                body=f"Visita de {client_name} a {property_name}{unit_info} em {slot}.",
                recipients=[agent["email"]],
                html_body=html,
            )

    def _visit_denied(self, visit: VisitRequest, agent_ids: tuple):
        store = self.store_factory()
        client_email, client_name, property_name, _ = self._names(
            store, visit.client_id, visit.property_id, None
        )

        if client_email:
            html = (
                f"<p>Olá {escape(client_name)},</p>"
                f"<p>Infelizmente sua solicitação de visita ao imóvel <strong>{escape(property_name)}</strong> foi negada.</p>"
                f"<p>Motivo informado:</p><p>{format_multiline(visit.client_msg or '')}</p>"
                "<p>Se tiver dúvidas, responda a este e-mail para que possamos ajudar.</p>"
            )
            self.send(
                subject="Visita negada",
                body=f"Sua visita a {property_name} foi negada. Motivo: {visit.client_msg}",
                recipients=[client_email],
                html_body=html,
            )

        if visit.agent_msg and agent_ids:
            agent_emails = [
                (store.get_user(agent_id) or {}).get("email") for agent_id in agent_ids
            ]
            html = (
                "<p>Olá,</p>"
                f"<p>A solicitação de visita para o cliente <strong>{escape(client_name)}</strong> foi negada.</p>"
                f"<p>Mensagem da administração:</p><p>{format_multiline(visit.agent_msg)}</p>"
            )
            self.send(
                subject="Visita negada",
                body=f"A visita de {client_name} foi negada. {visit.agent_msg}",
                recipients=[e for e in agent_emails if e],
                html_body=html,
            )

    def _reservation_decided(self, reservation: ReservationRequest):
        store = self.store_factory()
        client_email, client_name, property_name, unit_info = self._names(
            store, reservation.client_id, reservation.property_id, reservation.unit_id
        )
        if not client_email:
            logger.info(f"Client of reservation {reservation.id} has no e-mail, skipping.")
            return

        status = reservation.status.value
        target = escape(property_name + unit_info)
        reason = ""
        if reservation.client_msg:
            reason = f"<p>Mensagem:</p><p>{format_multiline(reservation.client_msg)}</p>"

        subjects = {
            "approved": ("Reserva aprovada", f"Sua solicitação de reserva para o imóvel <strong>{target}</strong> foi aprovada."),
            "denied": ("Reserva negada", f"Infelizmente sua solicitação de reserva para o imóvel <strong>{target}</strong> não pôde ser aprovada."),
            "completed": ("Reserva concluída", f"A reserva do imóvel <strong>{target}</strong> foi concluída."),
            "cancelled": ("Reserva cancelada", f"A reserva do imóvel <strong>{target}</strong> foi cancelada."),
        }
        if status not in subjects:
            return

        subject, line = subjects[status]
        html = (
            f"<p>Olá {escape(client_name)},</p><p>{line}</p>{reason}"
            f"<p>Equipe {escape(settings.EMAIL_FROM_NAME)}</p>"
        )
        self.send(
            subject=subject,
            body=f"{subject}: {property_name}{unit_info}. {reservation.client_msg or ''}".strip(),
            recipients=[client_email],
            html_body=html,
        )
