"""
WhatsApp conversation services

Webhook payloads follow the Cloud API shape:

    {"entry": [{"changes": [{"value": {"messages": [...], "contacts": [...]}}]}]}
    {"entry": [{"changes": [{"value": {"statuses": [...]}}]}]}
"""
import logging

from django.db import transaction
from django.utils import timezone

from apps.core.models import LeadSource
from apps.leads.models import Lead
from .models import Message, Channel
from .realtime import broadcast_message
from .whatsapp_api import normalize_phone_number

logger = logging.getLogger(__name__)

STATUS_MAP = {
    'sent': Message.STATUS_SENT,
    'delivered': Message.STATUS_DELIVERED,
    'read': Message.STATUS_READ,
    'failed': Message.STATUS_FAILED,
}


def extract_change_value(payload):
    """entry[0].changes[0].value, or {} when any level is missing."""
    try:
        return payload['entry'][0]['changes'][0]['value'] or {}
    except (KeyError, IndexError, TypeError):
        return {}


def find_lead_by_phone(company, phone):
    """Match a lead of the company whose stored phone normalizes to the same number."""
    normalized = normalize_phone_number(phone)
    if not normalized:
        return None

    candidates = Lead.objects.filter(company=company, phone__endswith=normalized[-8:])
    for lead in candidates:
        if normalize_phone_number(lead.phone) == normalized:
            return lead
    return None


def _message_content(wa_message):
    message_type = wa_message.get('type', 'text')
    if message_type == 'text':
        return (wa_message.get('text') or {}).get('body', ''), None

    media = wa_message.get(message_type) or {}
    caption = media.get('caption', '')
    media_type = message_type if message_type in dict(Message.MEDIA_CHOICES) else None
    return caption or f"[{message_type}]", media_type


def receive_incoming_message(company, value):
    """
    Store the first message of a webhook change value

    Returns:
        (message, lead_created)
    """
    wa_message = value['messages'][0]
    phone = wa_message.get('from', '')
    contacts = value.get('contacts') or [{}]
    contact_name = (contacts[0].get('profile') or {}).get('name') or phone
    content, media_type = _message_content(wa_message)

    with transaction.atomic():
        lead = find_lead_by_phone(company, phone)
        lead_created = lead is None
        if lead_created:
            lead = Lead.objects.create(
                company=company,
                name=contact_name,
                phone=normalize_phone_number(phone),
                source=LeadSource.get_default(LeadSource.WHATSAPP),
                stage=Lead.STAGE_UNASSIGNED,
            )
            logger.info(f"New unassigned lead created from WhatsApp: {lead.id}")

        message = Message.objects.create(
            lead=lead,
            direction=Message.DIRECTION_INCOMING,
            content=content,
            media_type=media_type,
            status=Message.STATUS_DELIVERED,
            external_message_id=wa_message.get('id'),
        )

        channel, _ = Channel.objects.get_or_create(lead=lead, defaults={'company': company})
        channel.register_message(incoming=True)
        lead.touch_contact()

    broadcast_message(message)
    return message, lead_created


def apply_status_update(value):
    """
    Update the stored message named by statuses[0]

    Returns:
        The updated Message, or None when the id is unknown
    """
    status_info = value['statuses'][0]
    external_id = status_info.get('id')
    raw_status = status_info.get('status', '')

    if raw_status == 'failed':
        logger.error(f"WhatsApp message to {status_info.get('recipient_id')} failed: {status_info.get('errors')}")
    else:
        logger.info(f"WhatsApp message status for {status_info.get('recipient_id')}: {raw_status}")

    new_status = STATUS_MAP.get(raw_status)
    message = Message.objects.filter(external_message_id=external_id).first() if external_id else None
    if message is None or new_status is None:
        return None

    message.status = new_status
    fields = ['status', 'updated_at']
    if new_status == Message.STATUS_FAILED:
        errors = status_info.get('errors') or [{}]
        message.error_message = errors[0].get('title') or errors[0].get('message') or 'Delivery failed'
        fields.append('error_message')
    message.save(update_fields=fields)
    return message


def record_outgoing_message(lead, user, content='', media_url=None, media_type=None):
    """Save an outgoing message before it is handed to the API."""
    message = Message.objects.create(
        lead=lead,
        user=user,
        direction=Message.DIRECTION_OUTGOING,
        content=content,
        media_url=media_url or None,
        media_type=media_type or None,
        status=Message.STATUS_PENDING,
    )
    channel, _ = Channel.objects.get_or_create(lead=lead, defaults={'company': lead.company})
    channel.register_message(incoming=False)
    lead.touch_contact(timezone.now())
    return message
