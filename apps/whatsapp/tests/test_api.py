"""
WhatsApp Cloud API Client Tests
===============================

Test Coverage:
1. normalize_phone_number - country code, ninth digit, landlines
2. WhatsAppCloudClient - request bodies for text, template and media
3. Error handling - API errors and network failures raise WhatsAppAPIError
4. send_whatsapp_message - marks the stored message sent or failed

Run tests:
    pytest apps/whatsapp/tests/test_api.py
"""

from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, SimpleTestCase

from apps.core.models import Company
from apps.leads.models import Lead
from apps.whatsapp.models import WhatsAppConfig, Message
from apps.whatsapp.whatsapp_api import (
    WhatsAppAPIError, WhatsAppCloudClient, normalize_phone_number, send_whatsapp_message,
)


def api_response(status_code=200, data=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = data if data is not None else {'messages': [{'id': 'wamid.ABC'}]}
    response.text = ''
    return response


class NormalizePhoneNumberTest(SimpleTestCase):

    def test_adds_country_code(self):
        self.assertEqual(normalize_phone_number('(31) 98888-7777'), '5531988887777')
        self.assertEqual(normalize_phone_number('3133334444'), '553133334444')

    def test_inserts_ninth_digit_for_mobiles(self):
        self.assertEqual(normalize_phone_number('553188887777'), '5531988887777')

    def test_keeps_landlines(self):
        """
        Test: 12-digit number whose local part starts with 3

        Expected: Unchanged (landline, no ninth digit)
        """
        self.assertEqual(normalize_phone_number('+55 11 3333-4444'), '551133334444')

    def test_empty(self):
        self.assertEqual(normalize_phone_number(None), '')


class WhatsAppCloudClientTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Energy Co')
        self.config = WhatsAppConfig.objects.create(
            company=self.company,
            phone_number_id='1122334455',
            access_token='token-abc',
            verify_token='verify-123',
        )
        self.client_api = WhatsAppCloudClient(self.config)

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_text_message(self, mock_post):
        mock_post.return_value = api_response()

        message_id = self.client_api.send_text_message('31988887777', 'Hello')

        self.assertEqual(message_id, 'wamid.ABC')
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://graph.facebook.com/v20.0/1122334455/messages')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer token-abc')
        self.assertEqual(kwargs['json'], {
            'messaging_product': 'whatsapp',
            'to': '5531988887777',
            'type': 'text',
            'text': {'preview_url': False, 'body': 'Hello'},
        })

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_template_message(self, mock_post):
        mock_post.return_value = api_response()

        self.client_api.send_template_message(
            '31988887777', 'promo_solar', body_params=['Maria'], header_image_url='https://cdn.example.com/a.png',
        )

        template = mock_post.call_args[1]['json']['template']
        self.assertEqual(template['name'], 'promo_solar')
        self.assertEqual(template['language'], {'code': 'pt_BR'})
        self.assertEqual(template['components'][0]['parameters'][0]['image']['link'], 'https://cdn.example.com/a.png')
        self.assertEqual(template['components'][1]['parameters'], [{'type': 'text', 'text': 'Maria'}])

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_template_without_components(self, mock_post):
        mock_post.return_value = api_response()

        self.client_api.send_template_message('31988887777', 'hello_world')

        self.assertNotIn('components', mock_post.call_args[1]['json']['template'])

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_media_message(self, mock_post):
        mock_post.return_value = api_response()

        self.client_api.send_media_message('31988887777', 'https://cdn.example.com/f.pdf', 'document', 'Invoice')
        body = mock_post.call_args[1]['json']
        self.assertEqual(body['type'], 'document')
        self.assertEqual(body['document'], {'link': 'https://cdn.example.com/f.pdf', 'caption': 'Invoice'})

        self.client_api.send_media_message('31988887777', 'https://cdn.example.com/a.ogg', 'audio', 'ignored')
        self.assertEqual(mock_post.call_args[1]['json']['audio'], {'link': 'https://cdn.example.com/a.ogg'})

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_api_error(self, mock_post):
        mock_post.return_value = api_response(400, {'error': {'message': 'Invalid parameter'}})

        with self.assertRaisesMessage(WhatsAppAPIError, 'Invalid parameter'):
            self.client_api.send_text_message('31988887777', 'Hello')

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_network_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('boom')

        with self.assertRaises(WhatsAppAPIError):
            self.client_api.send_text_message('31988887777', 'Hello')


class SendWhatsappMessageTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Energy Co')
        self.lead = Lead.objects.create(company=self.company, name='Maria', phone='31988887777')
        self.message = Message.objects.create(lead=self.lead, direction=Message.DIRECTION_OUTGOING, content='Hi')

    def test_without_config_marks_failed(self):
        success, error = send_whatsapp_message(self.message)

        self.assertFalse(success)
        self.message.refresh_from_db()
        self.assertEqual(self.message.status, Message.STATUS_FAILED)
        self.assertIn('configuration', self.message.error_message)

    @patch('apps.whatsapp.whatsapp_api.requests.post')
    def test_success_marks_sent(self, mock_post):
        WhatsAppConfig.objects.create(company=self.company, phone_number_id='1', access_token='t', verify_token='v')
        mock_post.return_value = api_response()

        success, error = send_whatsapp_message(self.message)

        self.assertTrue(success)
        self.assertIsNone(error)
        self.message.refresh_from_db()
        self.assertEqual(self.message.status, Message.STATUS_SENT)
        self.assertEqual(self.message.external_message_id, 'wamid.ABC')
