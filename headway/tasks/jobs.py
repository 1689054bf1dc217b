from headway.tasks.celery_app import celery
from headway.tasks import worker_jobs

@celery.task(name="headway.tasks.jobs.process_email_queue")
def process_email_queue(limit: int = 50):
    return worker_jobs.process_email_queue(limit=limit)

@celery.task(name="headway.tasks.jobs.send_booking_reminders")
def send_booking_reminders():
    return worker_jobs.send_booking_reminders()
