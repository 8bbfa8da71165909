import logging

from celery import shared_task

from . import services

logger = logging.getLogger(__name__)


@shared_task
def process_old_withdrawals():
    """Daily beat job: complete week-old pending withdrawals."""
    count = services.process_old_withdrawals()
    logger.info(f"process_old_withdrawals task finished: {count} updated")
    return count
