import logging
from django.http import HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from django.db import transaction
from apps.accounts.decorators import api_login_required, admin_required, company_required
from apps.core.responses import parse_json, json_success, json_error, invalid_json_response, server_error_response
from apps.leads.models import Lead
from .models import WhatsAppConfig, Message, Channel
from .realtime import broadcast_message
from .services import extract_change_value, receive_incoming_message, apply_status_update, record_outgoing_message
from .tasks import send_bulk_template
from .whatsapp_api import send_whatsapp_message

logger = logging.getLogger(__name__)


def get_accessible_lead(request, lead_id):
    """Lead of the user's company; sellers only reach their assigned leads. Returns (lead, error_response)."""
    try:
        lead = Lead.objects.get(id=lead_id, company=request.user.company)
    except (Lead.DoesNotExist, ValueError, TypeError):
        return None, json_error('Lead not found or access denied', status=404)

    if not request.user.is_admin() and lead.assigned_to_id != request.user.id:
        return None, json_error('You can only message your assigned leads', status=403)

    return lead, None


@csrf_exempt
@require_http_methods(["GET", "POST"])
def webhook(request, verify_token):

    # Step 1: Resolve the company from the token in the URL
    config = WhatsAppConfig.objects.filter(verify_token=verify_token, is_active=True).select_related('company').first()

    # Step 2: Meta subscription handshake
    if request.method == 'GET':
        if config and request.GET.get('hub.mode') == 'subscribe' and request.GET.get('hub.verify_token', verify_token) == verify_token:
            logger.info(f"WhatsApp webhook verified for company: {config.company.name}")
            return HttpResponse(request.GET.get('hub.challenge', ''), status=200)
        logger.warning("WhatsApp webhook verification failed")
        return HttpResponse('Forbidden', status=403)

    if config is None:
        logger.error("WhatsApp webhook with unknown verify token")
        return json_error('Invalid webhook token', status=403)

    try:
        # Step 3: Parse JSON payload
        payload = parse_json(request)
        if payload is None:
            return invalid_json_response()

        value = extract_change_value(payload)

        # Step 4: Incoming message
        if value.get('messages'):
            message, lead_created = receive_incoming_message(config.company, value)
            return json_success({
                'lead_id': message.lead_id,
                'message_id': message.id,
                'lead_created': lead_created,
            }, message='Message received and processed')

        # Step 5: Delivery status
        if value.get('statuses'):
            message = apply_status_update(value)
            return json_success({'message_id': message.id if message else None}, message='Status processed')

        # Step 6: Anything else is acknowledged and ignored
        return json_success(message='Irrelevant payload ignored', ignored=True)

    except Exception as e:
        logger.error(f"Unexpected error in WhatsApp webhook: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@company_required
@require_http_methods(["POST"])
def send_message_api(request):

    logger.info(f"Send message request from user: {request.user.email}")

    try:
        # Step 1: Parse JSON payload
        payload = parse_json(request)
        if payload is None:
            return invalid_json_response()

        # Step 2: Extract fields
        message_content = payload.get('message', '')
        media_url = payload.get('media_url')
        media_type = payload.get('media_type')

        # Step 3: Validate required fields
        if not payload.get('lead_id'):
            return json_error('Lead ID is required', status=400)

        if not message_content and not media_url:
            return json_error('Message content or media is required', status=400)

        if media_url and media_type not in dict(Message.MEDIA_CHOICES):
            return json_error('media_type must be image, audio or document', status=400)

        # Step 4: Get lead and validate access
        lead, error = get_accessible_lead(request, payload.get('lead_id'))
        if error:
            return error

        # Step 5: Save first, so the conversation keeps the attempt
        with transaction.atomic():
            message = record_outgoing_message(lead, request.user, message_content, media_url, media_type)

        # Step 6: Send via the Cloud API when the lead has a phone
        if lead.phone:
            success, send_error = send_whatsapp_message(message)
            if not success:
                return json_error(f'Failed to send message: {send_error}', status=502, message_id=message.id)
        else:
            logger.info(f"Lead {lead.id} has no phone; message {message.id} stored only")

        message.refresh_from_db()
        broadcast_message(message)

        # Step 7: Return success response
        return json_success({
            'message_id': message.id,
            'external_message_id': message.external_message_id,
            'status': message.status,
            'created_at': message.created_at.isoformat(),
        }, message='Message sent successfully')

    except Exception as e:
        logger.error(f"Unexpected error in send_message_api: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@company_required
@require_http_methods(["GET"])
def get_messages_api(request, lead_id):

    try:
        # Step 1: Get lead and validate access
        lead, error = get_accessible_lead(request, lead_id)
        if error:
            return error

        # Step 2: Conversation, oldest first
        messages = Message.objects.filter(lead=lead).select_related('user').order_by('created_at')

        # Step 3: Mark channel as read
        Channel.objects.filter(lead=lead).update(unread_count=0)

        return json_success({
            'lead': {
                'id': lead.id,
                'name': lead.name,
            },
            'messages': [msg.to_dict() for msg in messages],
        })

    except Exception as e:
        logger.error(f"Error in get_messages_api: {str(e)}", exc_info=True)
        return server_error_response()


@admin_required
@company_required
@require_http_methods(["POST"])
def bulk_send_api(request):

    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    template_name = payload.get('template_name')
    lead_ids = payload.get('lead_ids') or []

    if not template_name:
        return json_error('template_name is required', status=400)
    if not isinstance(lead_ids, list) or not lead_ids:
        return json_error('lead_ids must be a non-empty list', status=400)

    try:
        lead_ids = [int(pk) for pk in lead_ids]
    except (TypeError, ValueError):
        return json_error('lead_ids must contain integers', status=400)

    task = send_bulk_template.delay(
        request.user.company_id,
        lead_ids,
        template_name,
        header_image_url=payload.get('header_image_url'),
    )
    logger.info(f"Bulk template '{template_name}' queued for {len(lead_ids)} leads by {request.user.email}")

    return json_success({'task_id': task.id, 'queued': len(lead_ids)}, message='Bulk send queued', status=202)
