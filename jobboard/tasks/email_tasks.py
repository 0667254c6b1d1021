"""
Celery tasks for email operations.

Handles asynchronous email sending with retry logic.
"""

import logging
from celery import shared_task
from jobboard.services.email_service import email_service

logger = logging.getLogger(__name__)


class EmailDeliveryFailed(Exception):
    """Raised inside a task so Celery retries the send."""


@shared_task(
    bind=True,
    name="send_welcome_email_task",
    max_retries=3,
    default_retry_delay=60,  # Retry after 60 seconds
    autoretry_for=(EmailDeliveryFailed,),
    retry_backoff=True,
    retry_backoff_max=600,  # Max 10 minutes between retries
    retry_jitter=True
)
def send_welcome_email_task(self, to_email: str, user_name: str, url: str):
    """
    Send the welcome email of a freshly signed-up user.

    Retries up to 3 times with exponential backoff; a user never waits on it.
    """
    logger.info(f"Sending welcome email to {to_email} (attempt {self.request.retries + 1})")

    if not email_service.send_welcome_email(to_email=to_email, user_name=user_name, url=url):
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for {to_email}")
        raise EmailDeliveryFailed(f"Failed to send welcome email to {to_email}")

    logger.info(f"Welcome email sent successfully to {to_email}")
    return {"status": "success", "email": to_email}
