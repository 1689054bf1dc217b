from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from headway.core.config import settings


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" in qs:
        return url
    qs["ssl_cert_reqs"] = ["CERT_REQUIRED"]
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "headway",
    broker=_redis_url,
    backend=_redis_url,
    include=["headway.tasks.jobs"],
)

celery.conf.timezone = "UTC"

celery.conf.beat_schedule = {
    "process-email-queue-every-2-minutes": {
        "task": "headway.tasks.jobs.process_email_queue",
        "schedule": 120.0,
        "kwargs": {"limit": 50},
    },
    "send-booking-reminders-hourly": {
        "task": "headway.tasks.jobs.send_booking_reminders",
        "schedule": 3600.0,
    },
}
