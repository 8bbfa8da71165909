"""
Core Helper Tests
=================

Test Coverage:
1. Digit, money and phone formatting helpers
2. track_event - event recording and validation
3. send_telegram_message - configuration and HTTP failures
4. SequenceCounter / LeadSource.get_default

Run tests:
    pytest apps/core/tests/test_utils.py
"""

from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase, override_settings

from apps.core.models import UserEvent, SequenceCounter, LeadSource
from apps.core.notifications import send_telegram_message
from apps.core.tracking import track_event
from apps.core.utils import only_digits, to_cents, format_brl, mask_phone

User = get_user_model()


class FormattingTest(TestCase):

    def test_only_digits(self):
        self.assertEqual(only_digits('123.456.789-00'), '12345678900')
        self.assertEqual(only_digits(None), '')
        self.assertEqual(only_digits(3198887777), '3198887777')

    def test_to_cents_rounds_half_up(self):
        self.assertEqual(to_cents('10.005'), Decimal('10.01'))
        self.assertEqual(to_cents(Decimal('2.004')), Decimal('2.00'))

    def test_format_brl(self):
        self.assertEqual(format_brl(Decimal('1234.5')), 'R$ 1.234,50')
        self.assertEqual(format_brl(0), 'R$ 0,00')
        self.assertEqual(format_brl('-1000000'), '-R$ 1.000.000,00')

    def test_mask_phone(self):
        """
        Test: Mask phone numbers of different lengths

        Expected: Only the last four digits survive
        """
        self.assertEqual(mask_phone('(31) 98888-7777'), '*******7777')
        self.assertEqual(mask_phone('123'), '***')
        self.assertEqual(mask_phone(''), '')


class TrackEventTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='seller@test.com', password='testpass123')

    def test_records_user_snapshot(self):
        event = track_event(UserEvent.LEAD_VIEWED, self.user, {'lead_id': 7}, page='/leads/7/')

        self.assertEqual(event.user_email, 'seller@test.com')
        self.assertEqual(event.user_role, User.ROLE_SELLER)
        self.assertEqual(event.metadata, {'lead_id': 7})

    def test_anonymous_user(self):
        event = track_event(UserEvent.LEAD_VIEWED, AnonymousUser())

        self.assertIsNone(event.user)
        self.assertEqual(event.user_email, '')

    def test_unknown_event_type(self):
        with self.assertRaises(ValueError):
            track_event('page_view', self.user)


class TelegramNotificationTest(TestCase):

    @override_settings(TELEGRAM_BOT_TOKEN='', TELEGRAM_CHAT_ID='')
    def test_unconfigured_is_skipped(self):
        with patch('apps.core.notifications.requests.post') as mock_post:
            self.assertFalse(send_telegram_message('hello'))
        mock_post.assert_not_called()

    @override_settings(TELEGRAM_BOT_TOKEN='abc', TELEGRAM_CHAT_ID='42')
    def test_sends_message(self):
        with patch('apps.core.notifications.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=200)

            self.assertTrue(send_telegram_message('<b>Payment</b>'))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://api.telegram.org/botabc/sendMessage')
        self.assertEqual(kwargs['json']['chat_id'], '42')
        self.assertEqual(kwargs['json']['parse_mode'], 'HTML')

    @override_settings(TELEGRAM_BOT_TOKEN='abc', TELEGRAM_CHAT_ID='42')
    def test_failures_return_false(self):
        with patch('apps.core.notifications.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=400, text='Bad Request')
            self.assertFalse(send_telegram_message('hello'))

            mock_post.side_effect = requests.exceptions.ConnectionError('down')
            self.assertFalse(send_telegram_message('hello'))


class CounterAndSourceTest(TestCase):

    def test_sequence_counter_is_consecutive(self):
        self.assertEqual(SequenceCounter.next_value('proposal'), 1)
        self.assertEqual(SequenceCounter.next_value('proposal'), 2)
        self.assertEqual(SequenceCounter.next_value('invoice'), 1)

    def test_default_source_created_once(self):
        first = LeadSource.get_default(LeadSource.WHATSAPP)
        second = LeadSource.get_default(LeadSource.WHATSAPP)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.order, LeadSource.DEFAULT_SOURCES.index(LeadSource.WHATSAPP))
