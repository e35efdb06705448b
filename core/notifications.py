# core/notifications.py
import smtplib
import requests
from datetime import datetime, timedelta, timezone
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from core.config import settings
from core.logging_config import get_logger

logger = get_logger("notifications")


# -----------------------------------------------------
# 📨 Send webhook (Discord, Slack, etc.)
# -----------------------------------------------------
def send_webhook_message(message: str):
    webhook_url = settings.SYNC_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Webhook URL not configured — skipping.")
        return

    response = requests.post(webhook_url, json={"content": message}, timeout=10)
    response.raise_for_status()
    logger.info(f"Webhook sent (status {response.status_code})")


# -----------------------------------------------------
# 📧 Send email (SMTP)
# -----------------------------------------------------
def send_email(
    subject: str,
    body: str,
    recipients: List[str],
    html_body: Optional[str] = None,
):
    """
    Send email via SMTP.

    Raises on delivery failure so the dispatcher can retry;
    missing configuration or recipients is a silent skip.
    """
    recipient_list = [r for r in recipients if r]
    if not recipient_list:
        logger.warning("No recipients specified — skipping email.")
        return

    if not all([settings.SMTP_HOST, settings.SMTP_PORT, settings.SMTP_USER, settings.SMTP_PASS]):
        logger.warning("Email credentials missing — skipping email.")
        return

    msg = MIMEMultipart("alternative")
    msg["From"] = f"{settings.EMAIL_FROM_NAME} <{settings.SMTP_USER}>"
    msg["To"] = ", ".join(recipient_list)
    msg["Subject"] = subject

    msg.attach(MIMEText(body, "plain"))
    if html_body:
        msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.login(settings.SMTP_USER, settings.SMTP_PASS)
        server.send_message(msg)

    logger.info(f"Email '{subject}' sent to {len(recipient_list)} recipient(s)")


# -----------------------------------------------------
# 🔁 Fire-and-forget dispatcher
# -----------------------------------------------------
class NotificationDispatcher:
    """
    Runs notification jobs on an APScheduler background scheduler.

    dispatch() returns immediately and never raises. A failing job is
    re-queued after NOTIFY_RETRY_DELAY_SECONDS until NOTIFY_MAX_ATTEMPTS
    is reached, then dropped with an error log.
    """

    def __init__(
        self,
        scheduler: Optional[BackgroundScheduler] = None,
        max_attempts: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
    ):
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.max_attempts = max_attempts or settings.NOTIFY_MAX_ATTEMPTS
        self.retry_delay_seconds = (
            settings.NOTIFY_RETRY_DELAY_SECONDS if retry_delay_seconds is None else retry_delay_seconds
        )

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Notification dispatcher started")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Notification dispatcher stopped")

    def dispatch(self, job: Callable, *args, description: str = "notification") -> None:
        try:
            self.start()
            self.scheduler.add_job(
                self._run,
                args=[job, args, description, 1],
                misfire_grace_time=None,
            )
        except Exception as e:
            logger.error(f"Could not queue {description}: {e}", exc_info=True)

    def _run(self, job: Callable, args: tuple, description: str, attempt: int) -> None:
        try:
            job(*args)
        except Exception as e:
            if attempt >= self.max_attempts:
                logger.error(
                    f"{description} failed after {attempt} attempt(s), giving up: {e}",
                    exc_info=True,
                )
                return

            logger.warning(f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}")
            run_at = datetime.now(timezone.utc) + timedelta(seconds=self.retry_delay_seconds)
            try:
                self.scheduler.add_job(
                    self._run,
                    trigger="date",
                    run_date=run_at,
                    args=[job, args, description, attempt + 1],
                    misfire_grace_time=None,
                )
            except Exception as schedule_error:
                logger.error(f"Could not re-queue {description}: {schedule_error}")
