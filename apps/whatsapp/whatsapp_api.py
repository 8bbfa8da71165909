"""
This module handles communication with the WhatsApp Cloud API (Meta Graph API).

Features:
- Brazilian phone number normalization
- Send text, template and media (image, audio, document) messages
- Update message status after sending
"""

import re
import requests
import logging
from typing import Dict, List, Optional, Tuple
from .models import Message, WhatsAppConfig

logger = logging.getLogger(__name__)

GRAPH_API_URL = 'https://graph.facebook.com'
TEMPLATE_LANGUAGE = 'pt_BR'


class WhatsAppAPIError(Exception):
    """Raised when the Cloud API rejects a message or cannot be reached."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


def normalize_phone_number(phone: str) -> str:
    """
    Normalize a Brazilian phone number to the E.164 digits WhatsApp expects

    - non-digits are stripped
    - 10 or 11 digits (area code + number) get the 55 country code
    - 12 digits starting with 55 whose local number starts with 6-9 is a
      mobile missing the ninth digit, inserted after the area code
    """
    digits = re.sub(r'\D', '', phone or '')

    if len(digits) in (10, 11):
        digits = '55' + digits

    if len(digits) == 12 and digits.startswith('55') and digits[4] in '6789':
        digits = f"{digits[:4]}9{digits[4:]}"

    return digits


class WhatsAppCloudClient:

    def __init__(self, config: WhatsAppConfig):

        self.config = config
        self.url = f"{GRAPH_API_URL}/{config.get_api_version()}/{config.phone_number_id}/messages"

    def _get_headers(self) -> Dict[str, str]:

        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.config.access_token}',
        }

    def _post(self, body: Dict) -> str:
        """POST a message and return its wamid."""
        try:
            logger.info(f"Sending {body.get('type')} message to {body.get('to')}")
            response = requests.post(self.url, headers=self._get_headers(), json=body, timeout=30)
        except requests.exceptions.Timeout:
            raise WhatsAppAPIError("Request timeout - WhatsApp API did not respond")
        except requests.exceptions.RequestException as e:
            raise WhatsAppAPIError(f"Could not reach WhatsApp API: {str(e)}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        messages = data.get('messages') or [{}]
        message_id = messages[0].get('id')

        if not response.ok or not message_id:
            details = (data.get('error') or {}).get('message') or response.text or f"HTTP {response.status_code}"
            logger.error(f"WhatsApp API error ({response.status_code}): {details}")
            raise WhatsAppAPIError(details, status_code=response.status_code)

        return message_id

    def _base_body(self, phone: str, message_type: str) -> Dict:
        return {
            'messaging_product': 'whatsapp',
            'to': normalize_phone_number(phone),
            'type': message_type,
        }

    def send_text_message(self, phone: str, text: str) -> str:
        body = self._base_body(phone, 'text')
        body['text'] = {'preview_url': False, 'body': text}
        return self._post(body)

    def send_template_message(self, phone: str, template_name: str, body_params: Optional[List[str]] = None,
                              header_image_url: Optional[str] = None) -> str:
        body = self._base_body(phone, 'template')
        body['template'] = {'name': template_name, 'language': {'code': TEMPLATE_LANGUAGE}}

        components = []
        if header_image_url:
            components.append({
                'type': 'header',
                'parameters': [{'type': 'image', 'image': {'link': header_image_url}}],
            })
        if body_params:
            components.append({
                'type': 'body',
                'parameters': [{'type': 'text', 'text': str(param)} for param in body_params],
            })
        if components:
            body['template']['components'] = components

        return self._post(body)

    def send_media_message(self, phone: str, media_url: str, media_type: str, caption: Optional[str] = None) -> str:
        if media_type not in dict(Message.MEDIA_CHOICES):
            raise WhatsAppAPIError(f"Unsupported media type: {media_type}")

        body = self._base_body(phone, media_type)
        media = {'link': media_url}
        # Audio messages do not accept captions
        if caption and media_type != Message.MEDIA_AUDIO:
            media['caption'] = caption
        body[media_type] = media
        return self._post(body)


def get_client_for_company(company) -> WhatsAppCloudClient:
    try:
        config = WhatsAppConfig.objects.get(company=company, is_active=True)
    except WhatsAppConfig.DoesNotExist:
        raise WhatsAppAPIError("WhatsApp configuration not found or inactive")
    return WhatsAppCloudClient(config)


def send_whatsapp_message(message_obj: Message) -> Tuple[bool, Optional[str]]:
    """
    Deliver a saved outgoing message and record the outcome on it

    Returns:
        (success, error)
    """
    if not message_obj.is_outgoing():
        return False, "Can only send outgoing messages"

    lead = message_obj.lead
    try:
        client = get_client_for_company(lead.company)

        if message_obj.has_media():
            external_id = client.send_media_message(
                phone=lead.phone,
                media_url=message_obj.media_url,
                media_type=message_obj.media_type,
                caption=message_obj.content or None,
            )
        else:
            external_id = client.send_text_message(phone=lead.phone, text=message_obj.content)

    except WhatsAppAPIError as e:
        message_obj.mark_as_failed(str(e))
        logger.error(f"Message {message_obj.id} failed: {e}")
        return False, str(e)

    message_obj.mark_as_sent(external_message_id=external_id)
    logger.info(f"Message {message_obj.id} sent successfully")
    return True, None
