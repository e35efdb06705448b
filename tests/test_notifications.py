# tests/test_notifications.py

"""
Tests for the notification dispatcher and the request e-mails.
"""

import pytest
from unittest.mock import Mock, patch

from core.notifications import NotificationDispatcher, send_email, send_webhook_message
from models.enums import RequestKind
from models.requests import ReservationRequest, VisitRequest
from services.notices import RequestNotifier, format_multiline
from tests.fakes import SyncScheduler


@pytest.fixture
def scheduler():
    return SyncScheduler()


@pytest.fixture
def dispatcher(scheduler):
    return NotificationDispatcher(scheduler=scheduler, max_attempts=3, retry_delay_seconds=0)


@pytest.fixture
def sent():
    return []


@pytest.fixture
def request_notifier(dispatcher, store, sent):
    def send(subject, body, recipients, html_body=None):
        sent.append({"subject": subject, "recipients": recipients, "html": html_body})

    return RequestNotifier(dispatcher, lambda: store, send=send, webhook=Mock())


# ---------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------
def test_dispatch_runs_job(dispatcher):
    job = Mock()
    dispatcher.dispatch(job, "a", 1, description="test job")
    job.assert_called_once_with("a", 1)


def test_failed_job_is_retried_until_it_succeeds(dispatcher, scheduler):
    job = Mock(side_effect=[RuntimeError("smtp down"), None])

    dispatcher.dispatch(job, description="flaky job")
    assert job.call_count == 1
    assert len(scheduler.deferred) == 1

    scheduler.run_deferred()
    assert job.call_count == 2
    assert scheduler.deferred == []


def test_retries_stop_at_max_attempts(dispatcher, scheduler):
    job = Mock(side_effect=RuntimeError("smtp down"))

    dispatcher.dispatch(job, description="doomed job")
    scheduler.run_deferred()

    assert job.call_count == 3


def test_dispatch_never_raises_when_scheduler_is_broken():
    scheduler = Mock()
    scheduler.running = True
    scheduler.add_job.side_effect = RuntimeError("scheduler stopped")

    NotificationDispatcher(scheduler=scheduler).dispatch(Mock(), description="lost job")


# ---------------------------------------------------------
# Transport
# ---------------------------------------------------------
def test_send_email_skips_without_recipients():
    with patch("core.notifications.smtplib.SMTP_SSL") as smtp:
        send_email("Assunto", "corpo", [None, ""])
    smtp.assert_not_called()


def test_send_email_uses_smtp_ssl(monkeypatch):
    monkeypatch.setattr("core.notifications.settings.SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr("core.notifications.settings.SMTP_PORT", 465)
    monkeypatch.setattr("core.notifications.settings.SMTP_USER", "noreply@example.com")
    monkeypatch.setattr("core.notifications.settings.SMTP_PASS", "secret")

    with patch("core.notifications.smtplib.SMTP_SSL") as smtp:
        send_email("Assunto", "corpo", ["ana@example.com"], html_body="<p>corpo</p>")

    server = smtp.return_value.__enter__.return_value
    server.login.assert_called_once_with("noreply@example.com", "secret")
    message = server.send_message.call_args[0][0]
    assert message["To"] == "ana@example.com"
    assert message["Subject"] == "Assunto"


def test_send_email_propagates_delivery_errors(monkeypatch):
    monkeypatch.setattr("core.notifications.settings.SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr("core.notifications.settings.SMTP_PORT", 465)
    monkeypatch.setattr("core.notifications.settings.SMTP_USER", "noreply@example.com")
    monkeypatch.setattr("core.notifications.settings.SMTP_PASS", "secret")

    with patch("core.notifications.smtplib.SMTP_SSL", side_effect=OSError("refused")):
        with pytest.raises(OSError):
            send_email("Assunto", "corpo", ["ana@example.com"])


def test_webhook_posts_content(monkeypatch):
    monkeypatch.setattr("core.notifications.settings.SYNC_WEBHOOK_URL", "https://hooks.example.com/x")
    with patch("core.notifications.requests.post") as post:
        post.return_value.status_code = 204
        send_webhook_message("Reserva R1 aprovada")
    post.assert_called_once_with("https://hooks.example.com/x", json={"content": "Reserva R1 aprovada"}, timeout=10)


# ---------------------------------------------------------
# Request e-mails
# ---------------------------------------------------------
def test_visit_requested_goes_to_admins(request_notifier, store, sent, pending_visit):
    request_notifier.visit_requested(VisitRequest.model_validate(pending_visit))

    assert len(sent) == 1
    assert sent[0]["recipients"] == ["admin-1@example.com"]
    assert "Ana Souza" in sent[0]["html"]


def test_visit_approved_mails_client_and_agent(request_notifier, store, sent, pending_visit, tomorrow_slot):
    row = dict(pending_visit, status="approved", scheduled_slot=tomorrow_slot, assigned_agent_id="agent-1", agent_msg="Chegar <cedo>")

    request_notifier.visit_approved(VisitRequest.model_validate(row))

    assert [m["recipients"] for m in sent] == [["client-1@example.com"], ["agent-1@example.com"]]
    assert "10:00" in sent[0]["html"]
    assert "Chegar &lt;cedo&gt;" in sent[1]["html"]


def test_visit_denied_tells_previous_agent_only_with_agent_message(request_notifier, store, sent, pending_visit):
    row = dict(pending_visit, status="denied", client_msg="Sem horários")
    request_notifier.visit_denied(VisitRequest.model_validate(row), ["agent-1"])
    assert [m["recipients"] for m in sent] == [["client-1@example.com"]]

    sent.clear()
    row["agent_msg"] = "Cliente desistiu"
    request_notifier.visit_denied(VisitRequest.model_validate(row), ["agent-1"])
    assert [m["recipients"] for m in sent] == [["client-1@example.com"], ["agent-1@example.com"]]


@pytest.mark.parametrize(
    "status, subject",
    [
        ("approved", "Reserva aprovada"),
        ("denied", "Reserva negada"),
        ("completed", "Reserva concluída"),
        ("cancelled", "Reserva cancelada"),
    ],
)
def test_reservation_decision_subjects(request_notifier, store, sent, status, subject):
    row = store.add_request(RequestKind.reservations, client_id="client-1", property_id="P1", unit_id="U1", status=status)

    request_notifier.reservation_decided(ReservationRequest.model_validate(row))

    assert sent[0]["subject"] == subject
    assert "Unidade 101 - Bloco A" in sent[0]["html"]


def test_mail_failure_is_retried_on_the_dispatcher(dispatcher, scheduler, store, pending_reservation):
    send = Mock(side_effect=[OSError("smtp down"), None])
    request_notifier = RequestNotifier(dispatcher, lambda: store, send=send, webhook=Mock())

    request_notifier.reservation_requested(ReservationRequest.model_validate(pending_reservation))
    scheduler.run_deferred()

    assert send.call_count == 2


def test_format_multiline_escapes_html():
    assert format_multiline("a <b>\nc") == "a &lt;b&gt;<br />c"


def test_reservation_events_are_posted_to_the_ops_webhook(request_notifier, pending_reservation):
    reservation = ReservationRequest.model_validate(dict(pending_reservation, status="approved"))

    request_notifier.reservation_decided(reservation)

    request_notifier.webhook.assert_called_once_with("Reserva R1 (unidade U1): approved")
