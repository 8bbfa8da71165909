"""
Wallet Tests
============

Test Coverage:
1. request_withdrawal - minimum amount, balance check, immediate deduction
2. withdrawal_request_view / withdrawal_history_view - JSON API
3. update_withdrawal_status - failed refunds once, processed_at stamping
4. process_old_withdrawals - week-old pending requests auto-complete
5. Admin endpoints - permissions

Run tests:
    pytest apps/wallet/tests/test_withdrawals.py
"""

import json
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from apps.wallet import tasks
from apps.wallet.models import WithdrawalRequest
from apps.wallet.services import (
    AUTO_COMPLETE_NOTE, InsufficientBalanceError, WithdrawalError,
    process_old_withdrawals, request_withdrawal, update_withdrawal_status,
)

User = get_user_model()


class RequestWithdrawalTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='seller@test.com', password='testpass123',
                                             first_name='Ana', last_name='Lima')
        User.objects.filter(pk=self.user.pk).update(personal_balance=Decimal('100.00'),
                                                    mlm_balance=Decimal('60.00'))

    def test_deducts_personal_balance(self):
        withdrawal = request_withdrawal(self.user, '80', 'email', 'ana@pix.com', 'personal')

        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('20.00'))
        self.assertEqual(self.user.mlm_balance, Decimal('60.00'))
        self.assertEqual(withdrawal.status, WithdrawalRequest.STATUS_PENDING)
        self.assertEqual(withdrawal.user_name, 'Ana Lima')
        self.assertEqual(withdrawal.user_email, 'seller@test.com')

    def test_deducts_mlm_balance(self):
        request_withdrawal(self.user, Decimal('60'), 'random', 'abc-123', 'mlm')

        self.user.refresh_from_db()
        self.assertEqual(self.user.mlm_balance, Decimal('0.00'))
        self.assertEqual(self.user.personal_balance, Decimal('100.00'))

    def test_minimum_amount(self):
        """
        Test: Withdrawal of R$ 49.99

        Expected: Rejected with the minimum amount message, balance untouched
        """
        with self.assertRaisesMessage(WithdrawalError, 'The minimum withdrawal amount is R$ 50.00'):
            request_withdrawal(self.user, '49.99', 'email', 'ana@pix.com', 'personal')

        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('100.00'))

    def test_insufficient_balance(self):
        with self.assertRaises(InsufficientBalanceError):
            request_withdrawal(self.user, '61', 'email', 'ana@pix.com', 'mlm')

        self.assertFalse(WithdrawalRequest.objects.exists())

    def test_missing_fields(self):
        with self.assertRaises(WithdrawalError):
            request_withdrawal(self.user, '60', 'email', '', 'personal')
        with self.assertRaises(WithdrawalError):
            request_withdrawal(self.user, None, 'email', 'ana@pix.com', 'personal')


class WithdrawalStatusTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='seller@test.com', password='testpass123')
        User.objects.filter(pk=self.user.pk).update(personal_balance=Decimal('100.00'))
        self.withdrawal = request_withdrawal(self.user, '100', 'phone', '31999998888', 'personal')

    def test_failed_refunds_once(self):
        update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_FAILED, 'Invalid key')
        with self.assertRaises(WithdrawalError):
            update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_FAILED)

        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('100.00'))

        self.withdrawal.refresh_from_db()
        self.assertIsNotNone(self.withdrawal.processed_at)
        self.assertEqual(self.withdrawal.admin_notes, 'Invalid key')

    def test_completed_keeps_balance(self):
        update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_COMPLETED)

        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('0.00'))
        self.withdrawal.refresh_from_db()
        self.assertIsNotNone(self.withdrawal.processed_at)

    def test_failed_request_cannot_be_completed(self):
        """
        Test: Refunded request is later marked completed

        Expected: Rejected; the refund is not paid out a second time
        """
        update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_FAILED)

        with self.assertRaisesMessage(WithdrawalError, 'Withdrawal already processed'):
            update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_COMPLETED)

        self.withdrawal.refresh_from_db()
        self.assertEqual(self.withdrawal.status, WithdrawalRequest.STATUS_FAILED)
        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('100.00'))

    def test_completed_request_cannot_fail(self):
        update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_COMPLETED)

        with self.assertRaises(WithdrawalError):
            update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_FAILED)

        self.withdrawal.refresh_from_db()
        self.assertEqual(self.withdrawal.status, WithdrawalRequest.STATUS_COMPLETED)
        self.assertIsNone(self.withdrawal.refunded_at)
        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('0.00'))

    def test_processing_does_not_stamp(self):
        withdrawal = update_withdrawal_status(self.withdrawal.pk, WithdrawalRequest.STATUS_PROCESSING)

        self.assertIsNone(withdrawal.processed_at)

    def test_invalid_status(self):
        with self.assertRaises(WithdrawalError):
            update_withdrawal_status(self.withdrawal.pk, 'approved')


class ProcessOldWithdrawalsTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='seller@test.com', password='testpass123')
        User.objects.filter(pk=self.user.pk).update(personal_balance=Decimal('500.00'))
        self.old = request_withdrawal(self.user, '50', 'email', 'a@pix.com', 'personal')
        self.recent = request_withdrawal(self.user, '50', 'email', 'a@pix.com', 'personal')
        self.old_failed = request_withdrawal(self.user, '50', 'email', 'a@pix.com', 'personal')
        update_withdrawal_status(self.old_failed.pk, WithdrawalRequest.STATUS_FAILED)

        eight_days_ago = timezone.now() - timedelta(days=8)
        WithdrawalRequest.objects.filter(pk__in=[self.old.pk, self.old_failed.pk]).update(
            requested_at=eight_days_ago
        )

    def test_only_old_pending_are_completed(self):
        count = process_old_withdrawals()

        self.assertEqual(count, 1)
        self.old.refresh_from_db()
        self.assertEqual(self.old.status, WithdrawalRequest.STATUS_COMPLETED)
        self.assertEqual(self.old.admin_notes, AUTO_COMPLETE_NOTE)
        self.assertIsNotNone(self.old.processed_at)

        self.recent.refresh_from_db()
        self.assertEqual(self.recent.status, WithdrawalRequest.STATUS_PENDING)
        self.old_failed.refresh_from_db()
        self.assertEqual(self.old_failed.status, WithdrawalRequest.STATUS_FAILED)

    def test_celery_task(self):
        self.assertEqual(tasks.process_old_withdrawals.delay().get(), 1)
        self.assertEqual(process_old_withdrawals(), 0)


class WithdrawalViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='seller@test.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        User.objects.filter(pk=self.user.pk).update(personal_balance=Decimal('75.00'))

    def post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_request_and_history(self):
        self.client.login(email='seller@test.com', password='testpass123')

        response = self.post(reverse('wallet:withdrawal_request'), {
            'amount': 75, 'pix_key_type': 'cpf_cnpj', 'pix_key': '12345678901', 'withdrawal_type': 'personal',
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['amount'], '75.00')

        data = self.client.get(reverse('wallet:withdrawal_history')).json()['data']
        self.assertEqual(data['personal_balance'], '0.00')
        self.assertEqual(len(data['withdrawals']), 1)

    def test_request_below_minimum(self):
        self.client.login(email='seller@test.com', password='testpass123')

        response = self.post(reverse('wallet:withdrawal_request'), {
            'amount': 10, 'pix_key_type': 'email', 'pix_key': 'a@pix.com', 'withdrawal_type': 'personal',
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'The minimum withdrawal amount is R$ 50.00')

    def test_request_insufficient_balance(self):
        self.client.login(email='seller@test.com', password='testpass123')

        response = self.post(reverse('wallet:withdrawal_request'), {
            'amount': 80, 'pix_key_type': 'email', 'pix_key': 'a@pix.com', 'withdrawal_type': 'personal',
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'insufficient_balance')

    def test_admin_endpoints_require_admin(self):
        self.client.login(email='seller@test.com', password='testpass123')

        self.assertEqual(self.client.get(reverse('wallet:admin_withdrawal_list')).status_code, 403)
        self.assertEqual(self.client.post(reverse('wallet:admin_process_old')).status_code, 403)

    def test_admin_updates_status(self):
        withdrawal = request_withdrawal(self.user, '75', 'email', 'a@pix.com', 'personal')
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.post(
            reverse('wallet:admin_withdrawal_status', kwargs={'pk': withdrawal.pk}),
            {'status': 'failed', 'admin_notes': 'Wrong key'},
        )

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('75.00'))

        missing = self.post(reverse('wallet:admin_withdrawal_status', kwargs={'pk': 999}), {'status': 'failed'})
        self.assertEqual(missing.status_code, 404)

        again = self.post(
            reverse('wallet:admin_withdrawal_status', kwargs={'pk': withdrawal.pk}),
            {'status': 'completed'},
        )
        self.assertEqual(again.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.personal_balance, Decimal('75.00'))

    def test_admin_process_old(self):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.client.post(reverse('wallet:admin_process_old'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 0)
