import logging

from django.db import DatabaseError, transaction

from .models import UserEvent

logger = logging.getLogger(__name__)


def track_event(event_type, user=None, metadata=None, page=''):
    """
    Record an analytics event.

    Analytics must never break the operation being tracked, so database
    errors are logged and swallowed inside a savepoint.

    Returns:
        UserEvent or None
    """
    if event_type not in dict(UserEvent.EVENT_CHOICES):
        raise ValueError(f"Unknown event type: {event_type}")

    authenticated = user is not None and user.is_authenticated
    try:
        with transaction.atomic():
            event = UserEvent.objects.create(
                event_type=event_type,
                user=user if authenticated else None,
                user_email=user.email if authenticated else '',
                user_role=user.role if authenticated else '',
                page=page or '',
                metadata=metadata or {},
            )
    except DatabaseError as e:
        logger.error(f"Failed to track event {event_type}: {e}", exc_info=True)
        return None

    logger.debug(f"Tracked {event_type} for {event.user_email or 'anonymous'}")
    return event
