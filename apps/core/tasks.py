import logging

from celery import shared_task

from .notifications import send_telegram_message

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def send_telegram_notification(text):
    """Deliver an admin notification outside the request cycle."""
    if not send_telegram_message(text):
        logger.warning("Telegram notification was not delivered")
