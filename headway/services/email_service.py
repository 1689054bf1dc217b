import logging
import smtplib
import uuid
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import parseaddr

import requests
from sqlalchemy.orm import Session

from headway.core.config import settings
from headway.models.email_log import EmailLog

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def queue_email(db: Session, to_email: str, subject: str, text: str, html: str | None = None, related_booking_id: str = "") -> str:
    """Log and attempt immediate send. Never raises on delivery failure.

    The body is stored so the worker can retry rows left in ``failed``.
    """
    eid = str(uuid.uuid4())
    db.add(
        EmailLog(
            id=eid,
            to_email=to_email,
            subject=subject,
            body=text,
            html=html,
            status="queued",
            related_booking_id=related_booking_id,
        )
    )
    db.commit()

    log = db.get(EmailLog, eid)
    try:
        send_email(to_email, subject, text, html)
        log.status = "sent"
        log.sent_at = datetime.now(timezone.utc)
    except Exception as e:
        logger.warning("Email %s to %s failed, left for retry: %s", eid, to_email, e)
        log.status = "failed"
    db.commit()
    return eid


def send_email(to_email: str, subject: str, text: str, html: str | None = None):
    """Send email via Resend if configured, otherwise SMTP (MailHog recommended for local)."""

    if settings.RESEND_API_KEY:
        _send_via_resend(to_email, subject, text, html)
        return

    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg, from_addr=parseaddr(settings.EMAIL_FROM)[1])


def _send_via_resend(to_email: str, subject: str, text: str, html: str | None):
    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "text": text,
    }
    if html:
        payload["html"] = html

    r = requests.post(
        RESEND_URL,
        json=payload,
        headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"Resend error {r.status_code}: {r.text}")


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Retry up to `limit` queued or failed emails. Returns counts."""
    pending = (
        db.query(EmailLog)
        .filter(EmailLog.status.in_(["queued", "failed"]), EmailLog.body.isnot(None), EmailLog.body != "")
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent, failed = 0, 0
    for log in pending:
        try:
            send_email(log.to_email, log.subject, log.body, log.html)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            sent += 1
        except Exception as e:
            logger.warning("Retry of email %s failed: %s", log.id, e)
            log.status = "failed"
            failed += 1
    if pending:
        db.commit()
    return {"processed": len(pending), "sent": sent, "failed": failed}
