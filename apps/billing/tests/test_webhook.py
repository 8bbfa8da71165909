"""
Asaas Webhook Tests
===================

Test Coverage:
1. Shared-secret validation (401)
2. Event filtering (non-payment events are acknowledged, not processed)
3. Credit grant from the price table, SDR plan upgrade
4. Referral commission (same transaction)
5. Idempotency - a replayed delivery never double-credits
6. Rollback - a failure after the credit grant leaves nothing behind
7. Malformed payment objects (400) and the commission list

Run tests:
    pytest apps/billing/tests/test_webhook.py
"""

import json
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse

from apps.billing.models import Commission, CreditTransaction, PaymentEvent
from apps.core.models import Company

User = get_user_model()

SECRET = 'test-webhook-secret'


def make_payload(user, payment_id='pay_001', value=125, description='50 Credits', event='PAYMENT_RECEIVED', **extra):
    payment = {
        'id': payment_id,
        'value': value,
        'description': description,
        'externalReference': str(user.pk) if user else None,
    }
    payment.update(extra)
    return {'event': event, 'payment': payment}


class AsaasWebhookTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.url = reverse('billing:asaas_webhook')
        self.company = Company.objects.create(name='Energy Co')
        self.referrer = User.objects.create_user(
            email='referrer@test.com', password='testpass123', company=self.company,
        )
        self.user = User.objects.create_user(
            email='buyer@test.com', password='testpass123', company=self.company,
            referred_by=self.referrer,
        )

    def post(self, payload, token=SECRET):
        headers = {'HTTP_ASAAS_ACCESS_TOKEN': token} if token is not None else {}
        return self.client.post(self.url, data=json.dumps(payload), content_type='application/json', **headers)

    def test_rejects_missing_or_wrong_token(self):
        """
        Test: Requests without the shared secret are rejected

        Expected: 401 and no credits granted
        """
        self.assertEqual(self.post(make_payload(self.user), token=None).status_code, 401)
        self.assertEqual(self.post(make_payload(self.user), token='wrong').status_code, 401)

        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 0)

    def test_empty_secret_rejects_everything(self):
        with self.settings(ASAAS_WEBHOOK_SECRET=''):
            response = self.post(make_payload(self.user), token='')
        self.assertEqual(response.status_code, 401)

    def test_invalid_json(self):
        response = self.client.post(self.url, data='not json', content_type='application/json',
                                    HTTP_ASAAS_ACCESS_TOKEN=SECRET)
        self.assertEqual(response.status_code, 400)

    def test_malformed_payment_object(self):
        response = self.post({'event': 'PAYMENT_RECEIVED', 'payment': 'x'})
        self.assertEqual(response.status_code, 400)

        response = self.post(['PAYMENT_RECEIVED'])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(PaymentEvent.objects.exists())

    def test_other_events_are_acknowledged(self):
        response = self.post(make_payload(self.user, event='PAYMENT_CREATED'))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['received'])
        self.assertFalse(data['processed'])
        self.assertFalse(PaymentEvent.objects.exists())

    def test_missing_user_reference(self):
        response = self.post(make_payload(None))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'No user reference')

    def test_unknown_user(self):
        payload = make_payload(self.user)
        payload['payment']['externalReference'] = '999999'

        response = self.post(payload)

        self.assertEqual(response.status_code, 404)
        self.assertFalse(PaymentEvent.objects.exists())

    def test_payment_grants_credits_and_commission(self):
        """
        Test: A confirmed R$ 125 payment

        Expected: 50 credits, R$ 12.50 commission to the referrer
        """
        response = self.post(make_payload(self.user, value=125))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['processed'])
        self.assertEqual(data['credits_added'], 50)
        self.assertEqual(data['commission'], '12.50')

        self.user.refresh_from_db()
        self.referrer.refresh_from_db()
        self.assertEqual(self.user.credits, 50)
        self.assertEqual(self.referrer.mlm_balance, Decimal('12.50'))

        commission = Commission.objects.get()
        self.assertEqual(commission.affiliate, self.referrer)
        self.assertEqual(commission.from_user, self.user)
        self.assertEqual(commission.base_amount, Decimal('125.00'))
        self.assertEqual(commission.status, 'paid')

        entry = CreditTransaction.objects.get(user=self.user)
        self.assertEqual(entry.delta, 50)
        self.assertEqual(entry.balance_after, 50)
        self.assertEqual(entry.reason, CreditTransaction.REASON_PURCHASE)
        self.assertEqual(entry.reference, 'pay_001')

    def test_referrer_sees_commission(self):
        self.post(make_payload(self.user, value=200))
        self.client.login(email='referrer@test.com', password='testpass123')

        data = self.client.get(reverse('billing:commission_list')).json()['data']

        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['amount'], '20.00')
        self.assertEqual(data[0]['from_user'], 'buyer@test.com')

    def test_payment_confirmed_event_is_processed(self):
        response = self.post(make_payload(self.user, value=30, event='PAYMENT_CONFIRMED'))

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 10)

    def test_no_referrer_no_commission(self):
        self.user.referred_by = None
        self.user.save()

        self.post(make_payload(self.user, value=900))

        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 500)
        self.assertFalse(Commission.objects.exists())

    def test_small_payment_grants_no_credits_but_pays_commission(self):
        self.post(make_payload(self.user, value=20))

        self.user.refresh_from_db()
        self.referrer.refresh_from_db()
        self.assertEqual(self.user.credits, 0)
        self.assertEqual(self.referrer.mlm_balance, Decimal('2.00'))
        self.assertFalse(CreditTransaction.objects.exists())

    def test_sdr_plan_payment_upgrades_plan(self):
        payload = make_payload(
            self.user, value=150, description='Plano SDR (Loyalty)', subscription='sub_123',
        )

        self.post(payload)

        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 300)
        self.assertEqual(self.user.plan, User.PLAN_SDR_PRO)
        self.assertEqual(self.user.subscription_id, 'sub_123')
        self.assertEqual(CreditTransaction.objects.get().reason, CreditTransaction.REASON_PLAN)

    def test_duplicate_delivery_is_a_noop(self):
        """
        Test: The gateway retries the same delivery

        Expected: second response flags duplicate, balances unchanged
        """
        payload = make_payload(self.user, value=200)

        first = self.post(payload)
        second = self.post(payload)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertTrue(second.json()['duplicate'])

        self.user.refresh_from_db()
        self.referrer.refresh_from_db()
        self.assertEqual(self.user.credits, 100)
        self.assertEqual(self.referrer.mlm_balance, Decimal('20.00'))
        self.assertEqual(Commission.objects.count(), 1)
        self.assertEqual(PaymentEvent.objects.count(), 1)

    def test_received_after_confirmed_credits_once(self):
        self.post(make_payload(self.user, value=200, event='PAYMENT_CONFIRMED'))
        response = self.post(make_payload(self.user, value=200, event='PAYMENT_RECEIVED'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['credits_added'], 0)

        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 100)
        self.assertEqual(Commission.objects.count(), 1)
        self.assertEqual(
            list(PaymentEvent.objects.order_by('created_at', 'id').values_list('status', flat=True)),
            [PaymentEvent.STATUS_PROCESSED, PaymentEvent.STATUS_IGNORED],
        )

    def test_failure_rolls_back_credit_grant(self):
        """
        Test: The commission write fails after credits were granted

        Expected: 500 and nothing persisted (credits, ledger, event)
        """
        with patch('apps.billing.services.pay_referral_commission', side_effect=RuntimeError('db down')):
            response = self.post(make_payload(self.user, value=125))

        self.assertEqual(response.status_code, 500)
        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 0)
        self.assertFalse(CreditTransaction.objects.exists())
        self.assertFalse(PaymentEvent.objects.exists())

        # The gateway retries and the payment goes through
        response = self.post(make_payload(self.user, value=125))
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.credits, 50)
