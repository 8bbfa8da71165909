import logging

from celery import shared_task
from django.conf import settings

from apps.core.models import Company
from apps.leads.models import Lead
from .whatsapp_api import WhatsAppAPIError, get_client_for_company

logger = logging.getLogger(__name__)


def chunked(items, size):
    for start in range(0, len(items), size):
        yield items[start:start + size]


@shared_task
def send_bulk_template(company_id, lead_ids, template_name, header_image_url=None):
    """
    Send an approved template to many leads, WHATSAPP_BULK_CHUNK_SIZE at a time

    The lead name fills the template's {{1}} body parameter.

    Returns:
        dict: {'sent': int, 'failed': int, 'errors': [...]}
    """
    result = {'sent': 0, 'failed': 0, 'errors': []}

    company = Company.objects.get(pk=company_id)
    try:
        client = get_client_for_company(company)
    except WhatsAppAPIError as e:
        logger.error(f"Bulk send aborted for {company.name}: {e}")
        result['failed'] = len(lead_ids)
        result['errors'].append(str(e))
        return result

    leads = list(Lead.objects.filter(company=company, pk__in=lead_ids).exclude(phone=''))
    result['failed'] += len(set(lead_ids)) - len(leads)

    for chunk in chunked(leads, settings.WHATSAPP_BULK_CHUNK_SIZE):
        for lead in chunk:
            try:
                client.send_template_message(
                    lead.phone,
                    template_name,
                    body_params=[lead.name],
                    header_image_url=header_image_url,
                )
                result['sent'] += 1
            except WhatsAppAPIError as e:
                result['failed'] += 1
                result['errors'].append(f"{lead.id}: {e}")
        logger.info(f"Bulk send progress: {result['sent']} sent, {result['failed']} failed")

    return result
