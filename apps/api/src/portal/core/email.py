"""
Email Service

Handles transactional email for the admissions, signup and account flows.

Sending is fire-and-forget: ``queue_email`` schedules the send as an asyncio
task and returns a delivery record immediately, so a slow or failing mail
provider never affects the HTTP response. Delivery records can be polled by
admins through the notifications endpoints.

Backends (``EMAIL_BACKEND``):
- resend: Resend API (sync SDK, run in a worker thread)
- smtp: SMTP relay via smtplib (run in a worker thread)
- console: log the message instead of sending it
"""

import asyncio
import enum
import logging
import smtplib
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.message import EmailMessage
from html import escape

import resend

from portal.core.config import settings

logger = logging.getLogger(__name__)

# Delivery records kept in memory for polling; oldest are evicted first
MAX_TRACKED_DELIVERIES = 500


class EmailConfigurationError(Exception):
    """Raised when a backend is misconfigured or rejects our credentials. Not retried."""


class DeliveryStatus(str, enum.Enum):
    """Lifecycle of a queued email."""

    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EmailDelivery:
    """Record of a single queued email."""

    to_email: str
    subject: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: DeliveryStatus = DeliveryStatus.QUEUED
    attempts: int = 0
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def mark(self, status: DeliveryStatus, error: str | None = None) -> None:
        self.status = status
        self.error = error
        self.updated_at = datetime.now(UTC)


_deliveries: "OrderedDict[uuid.UUID, EmailDelivery]" = OrderedDict()

# Strong references to in-flight tasks so they are not garbage collected
_background_tasks: set[asyncio.Task] = set()


# ============================================
# Backends
# ============================================


def _send_via_resend(to_email: str, subject: str, html_content: str) -> None:
    if not settings.resend_api_key:
        raise EmailConfigurationError("RESEND_API_KEY is not set")

    resend.api_key = settings.resend_api_key
    params: resend.Emails.SendParams = {
        "from": settings.email_from,
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }
    email = resend.Emails.send(params)
    logger.info(f"Email sent via Resend to {to_email}, id: {email['id']}")


def _send_via_smtp(to_email: str, subject: str, html_content: str) -> None:
    if not settings.smtp_host:
        raise EmailConfigurationError("SMTP_HOST is not set")

    message = EmailMessage()
    message["From"] = settings.email_from
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content("This message requires an HTML-capable email client.")
    message.add_alternative(html_content, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password or "")
            server.send_message(message)
    except smtplib.SMTPAuthenticationError as e:
        raise EmailConfigurationError(f"SMTP authentication failed: {e.smtp_code}") from e

    logger.info(f"Email sent via SMTP to {to_email}")


def _send_via_console(to_email: str, subject: str, html_content: str) -> None:
    logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject} | {len(html_content)} bytes")


BACKENDS: dict[str, Callable[[str, str, str], None]] = {
    "resend": _send_via_resend,
    "smtp": _send_via_smtp,
    "console": _send_via_console,
}


def get_backend() -> Callable[[str, str, str], None]:
    """Return the send function for the configured backend."""
    backend = BACKENDS.get(settings.email_backend.lower())
    if backend is None:
        raise EmailConfigurationError(f"Unknown EMAIL_BACKEND '{settings.email_backend}'")
    return backend


# ============================================
# Sending
# ============================================


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    delivery: EmailDelivery | None = None,
) -> bool:
    """
    Send an email through the configured backend, retrying transient failures.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email
        delivery: Optional record updated with the outcome

    Returns:
        True if the email was sent
    """
    delivery = delivery or EmailDelivery(to_email=to_email, subject=subject)

    if not to_email:
        logger.warning(f"Skipping email '{subject}': no recipient address")
        delivery.mark(DeliveryStatus.SKIPPED, "No recipient address")
        return False

    max_attempts = settings.email_max_attempts
    last_error: str | None = None

    for attempt in range(1, max_attempts + 1):
        delivery.attempts = attempt
        try:
            backend = get_backend()
            # Run sync provider calls in thread pool to avoid blocking event loop
            await asyncio.to_thread(backend, to_email, subject, html_content)
            delivery.mark(DeliveryStatus.SENT)
            return True
        except EmailConfigurationError as e:
            logger.error(f"Email configuration error sending to {to_email}: {e}")
            delivery.mark(DeliveryStatus.FAILED, str(e))
            return False
        except Exception as e:
            last_error = str(e)
            logger.warning(
                f"Failed to send email to {to_email} (attempt {attempt}/{max_attempts}): {e}"
            )
            if attempt < max_attempts:
                await asyncio.sleep(settings.email_retry_delay_seconds)

    logger.error(f"Giving up on email to {to_email} after {max_attempts} attempts")
    delivery.mark(DeliveryStatus.FAILED, last_error)
    return False


def _track(delivery: EmailDelivery) -> None:
    _deliveries[delivery.id] = delivery
    while len(_deliveries) > MAX_TRACKED_DELIVERIES:
        _deliveries.popitem(last=False)


def queue_email(to_email: str, subject: str, html_content: str) -> EmailDelivery:
    """
    Schedule an email to be sent in the background.

    Must be called from within a running event loop (any request handler).

    Returns:
        The delivery record, initially ``queued``
    """
    delivery = EmailDelivery(to_email=to_email, subject=subject)
    _track(delivery)

    task = asyncio.get_running_loop().create_task(
        send_email(to_email, subject, html_content, delivery=delivery)
    )
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    logger.debug(f"Queued email {delivery.id} to {to_email}: {subject}")
    return delivery


def get_delivery(delivery_id: uuid.UUID) -> EmailDelivery | None:
    return _deliveries.get(delivery_id)


def list_deliveries(status: DeliveryStatus | None = None, limit: int = 50) -> list[EmailDelivery]:
    """Most recent deliveries first."""
    records = [d for d in reversed(_deliveries.values()) if status is None or d.status == status]
    return records[:limit]


# ============================================
# Templates
# ============================================


def _render(title: str, body: str) -> str:
    """Wrap template body HTML in the shared layout. ``body`` must already be escaped."""
    safe_school_name = escape(settings.school_name)
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #1a365d; margin-bottom: 24px; }}
            .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .info-box {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }}
            .code {{ font-size: 24px; font-weight: bold; letter-spacing: 4px; color: #1a365d; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{escape(title)}</h1>
            {body}
            <div class="footer">
                <p>{safe_school_name}</p>
            </div>
        </div>
    </body>
    </html>
    """


def send_application_received(
    to_email: str,
    applicant_name: str,
    application_number: str,
) -> EmailDelivery:
    """Confirm receipt of a new admission application."""
    body = f"""
            <p>Dear {escape(applicant_name)},</p>

            <p>Thank you for applying to <strong>{escape(settings.school_name)}</strong>. We have received your application.</p>

            <div class="info-box">
                <p><strong>Application Number:</strong> {escape(application_number)}</p>
                <p><strong>Status:</strong> Pending review</p>
            </div>

            <p>Please keep your application number for future reference. We will contact you by email once your application has been reviewed.</p>
    """
    return queue_email(
        to_email=to_email,
        subject=f"Application Received - {settings.school_name}",
        html_content=_render("Application Received", body),
    )


def send_application_accepted(
    to_email: str,
    applicant_name: str,
    application_number: str,
    username: str,
    otp: str,
    expiry_minutes: int,
) -> EmailDelivery:
    """Tell the applicant they were accepted and give them their one-time code."""
    body = f"""
            <p>Dear {escape(applicant_name)},</p>

            <p>Congratulations! Your application <strong>{escape(application_number)}</strong> to {escape(settings.school_name)} has been <strong>accepted</strong>.</p>

            <p>Your student account is being prepared. Your proposed username is <strong>{escape(username)}</strong>.</p>

            <div class="info-box">
                <p>Your one-time verification code:</p>
                <p class="code">{escape(otp)}</p>
                <p><strong>This code is valid for {expiry_minutes} minutes.</strong></p>
            </div>

            <p>Once an administrator activates your account you will receive your login details by email.</p>
    """
    return queue_email(
        to_email=to_email,
        subject="Application Approved - Next Steps",
        html_content=_render("Application Accepted", body),
    )


def send_application_rejected(
    to_email: str,
    applicant_name: str,
    application_number: str,
    notes: str | None = None,
) -> EmailDelivery:
    """Notify the applicant of an unsuccessful application."""
    notes_html = ""
    if notes:
        notes_html = f"""
            <div class="info-box">
                <p><strong>Notes from the admissions office:</strong></p>
                <p>{escape(notes)}</p>
            </div>
        """
    body = f"""
            <p>Dear {escape(applicant_name)},</p>

            <p>Thank you for your interest in {escape(settings.school_name)}. After careful review, we are unable to offer a place for application <strong>{escape(application_number)}</strong> at this time.</p>
            {notes_html}
            <p>If you have questions about this decision, please contact the admissions office.</p>
    """
    return queue_email(
        to_email=to_email,
        subject=f"Application Decision - {settings.school_name}",
        html_content=_render("Application Decision", body),
    )


def send_application_status_update(
    to_email: str,
    applicant_name: str,
    application_number: str,
    status: str,
) -> EmailDelivery:
    """Generic status-change notice (pending / under review)."""
    readable_status = status.replace("_", " ").title()
    body = f"""
            <p>Dear {escape(applicant_name)},</p>

            <p>The status of your application <strong>{escape(application_number)}</strong> has been updated.</p>

            <div class="info-box">
                <p><strong>Current Status:</strong> {escape(readable_status)}</p>
            </div>

            <p>We will notify you by email when a decision has been made.</p>
    """
    return queue_email(
        to_email=to_email,
        subject=f"Application Update - {settings.school_name}",
        html_content=_render("Application Update", body),
    )


def send_account_ready(
    to_email: str,
    full_name: str,
    username: str,
    temporary_password: str,
) -> EmailDelivery:
    """Send final login credentials for a newly provisioned student account."""
    login_url = f"{settings.frontend_url}/login"
    body = f"""
            <p>Dear {escape(full_name)},</p>

            <p>Your student account at {escape(settings.school_name)} is now active.</p>

            <div class="info-box">
                <p><strong>Username:</strong> {escape(username)}</p>
                <p><strong>Temporary password:</strong> <span class="code">{escape(temporary_password)}</span></p>
            </div>

            <p>You will be asked to choose a new password the first time you log in.</p>

            <a href="{escape(login_url)}" class="button">Log In</a>
    """
    return queue_email(
        to_email=to_email,
        subject="Your Student Account Is Ready",
        html_content=_render("Your Account Is Ready", body),
    )


def send_signup_rejected(
    to_email: str,
    full_name: str,
    reason: str | None = None,
) -> EmailDelivery:
    """Notify a prospective student that their account request was declined."""
    reason_html = f"<p><strong>Reason:</strong> {escape(reason)}</p>" if reason else ""
    body = f"""
            <p>Dear {escape(full_name)},</p>

            <p>We are sorry, but your student account request at {escape(settings.school_name)} was not approved.</p>
            {reason_html}
            <p>Please contact the school office if you believe this is a mistake.</p>
    """
    return queue_email(
        to_email=to_email,
        subject="Account Request Rejected",
        html_content=_render("Account Request Rejected", body),
    )


def send_password_reset(
    to_email: str,
    full_name: str,
    username: str,
    temporary_password: str,
) -> EmailDelivery:
    """Send a temporary password after an admin reset."""
    body = f"""
            <p>Dear {escape(full_name)},</p>

            <p>An administrator has reset the password for your account <strong>{escape(username)}</strong>.</p>

            <div class="info-box">
                <p><strong>Temporary password:</strong> <span class="code">{escape(temporary_password)}</span></p>
            </div>

            <p>You will be asked to choose a new password when you next log in.</p>
    """
    return queue_email(
        to_email=to_email,
        subject=f"Password Reset - {settings.school_name}",
        html_content=_render("Password Reset", body),
    )
