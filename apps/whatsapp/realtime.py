"""
Push chat messages to browsers connected on ws/chat/<lead_id>/
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def lead_group_name(lead_id):
    return f"lead_chat_{lead_id}"


def broadcast_message(message):
    """Send a stored Message to the lead's chat group; failures are only logged."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer configured; chat broadcast skipped")
        return False

    try:
        async_to_sync(channel_layer.group_send)(
            lead_group_name(message.lead_id),
            {'type': 'chat.message', 'message': message.to_dict()},
        )
    except Exception as e:
        logger.error(f"Chat broadcast failed for lead {message.lead_id}: {str(e)}", exc_info=True)
        return False
    return True
