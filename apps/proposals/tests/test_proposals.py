"""
Proposal Tests
==============

Test Coverage:
1. save_proposal - sequential numbers, credit charge, admin exemption
2. proposal_save_view - 402 on insufficient credits, validation
3. Telegram notification after commit (annual saving in BRL)
4. proposal_list_view - admins see the company, users see their own

Run tests:
    pytest apps/proposals/tests/test_proposals.py
"""

import json
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse

from apps.billing.models import CreditTransaction
from apps.core.models import Company
from apps.proposals.models import Proposal

User = get_user_model()

PAYLOAD = {
    'client_name': 'Supermercado Sol',
    'client_city': 'Belo Horizonte',
    'consumption_kwh': '1000',
    'current_tariff': '0.95',
    'discount_percentage': '20',
    'partner': 'Energia Verde',
    'extra_data': {'installation': '123456'},
}


@patch('apps.proposals.services.send_telegram_notification')
class ProposalSaveTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.url = reverse('proposals:proposal_save')
        self.company = Company.objects.create(name='Energy Co')
        self.seller = User.objects.create_user(
            email='seller@test.com', password='testpass123', first_name='Bia', company=self.company,
        )
        self.admin = User.objects.create_user(
            email='admin@test.com', password='testpass123', company=self.company, role='admin',
        )

    def post(self, payload=None):
        return self.client.post(self.url, data=json.dumps(payload or PAYLOAD), content_type='application/json')

    def test_seller_pays_two_credits(self, mock_task):
        User.objects.filter(pk=self.seller.pk).update(credits=5)
        self.client.login(email='seller@test.com', password='testpass123')

        response = self.post()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['proposal_number'], 1)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.credits, 3)
        entry = CreditTransaction.objects.get(user=self.seller)
        self.assertEqual(entry.reason, CreditTransaction.REASON_PROPOSAL)
        self.assertEqual(entry.reference, '1')

        proposal = Proposal.objects.get()
        self.assertEqual(proposal.status, Proposal.STATUS_GENERATED)
        self.assertEqual(proposal.created_by, self.seller)
        self.assertEqual(proposal.company, self.company)
        self.assertEqual(proposal.generator_name, 'Bia')
        self.assertEqual(proposal.extra_data, {'installation': '123456'})

    def test_numbers_are_sequential(self, mock_task):
        self.client.login(email='admin@test.com', password='testpass123')

        numbers = [self.post().json()['proposal_number'] for _ in range(3)]

        self.assertEqual(numbers, [1, 2, 3])

    def test_admin_is_not_charged(self, mock_task):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.post()

        self.assertEqual(response.status_code, 201)
        self.assertFalse(CreditTransaction.objects.exists())

    def test_insufficient_credits(self, mock_task):
        """
        Test: Seller with 1 credit generates a proposal

        Expected: 402, no proposal and no number consumed
        """
        User.objects.filter(pk=self.seller.pk).update(credits=1)
        self.client.login(email='seller@test.com', password='testpass123')

        response = self.post()

        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.json()['code'], 'no_credits')
        self.assertFalse(Proposal.objects.exists())

        User.objects.filter(pk=self.seller.pk).update(credits=2)
        self.assertEqual(self.post().json()['proposal_number'], 1)

    def test_validation(self, mock_task):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.post({**PAYLOAD, 'discount_percentage': '150'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('discount_percentage', response.json()['errors'])

    def test_notification_after_commit(self, mock_task):
        self.client.login(email='admin@test.com', password='testpass123')

        with self.captureOnCommitCallbacks(execute=True):
            self.post()

        message = mock_task.delay.call_args[0][0]
        self.assertIn('#1', message)
        self.assertIn('Supermercado Sol', message)
        # 1000 kWh x 0.95 x 12 x 20% = 2280
        self.assertIn('R$ 2.280,00/year', message)

    def test_annual_saving(self, mock_task):
        proposal = Proposal(consumption_kwh=Decimal('1000'), current_tariff=Decimal('0.95'),
                            discount_percentage=Decimal('20'))
        self.assertEqual(proposal.annual_saving(), Decimal('2280'))


class ProposalListTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Energy Co')
        self.seller = User.objects.create_user(email='seller@test.com', password='testpass123', company=self.company)
        self.other = User.objects.create_user(email='other@test.com', password='testpass123', company=self.company)
        self.admin = User.objects.create_user(
            email='admin@test.com', password='testpass123', company=self.company, role='admin',
        )
        common = dict(consumption_kwh=100, current_tariff=1, discount_percentage=10, company=self.company)
        Proposal.objects.create(number=1, client_name='A', created_by=self.seller, **common)
        Proposal.objects.create(number=2, client_name='B', created_by=self.other, **common)
        outsider_company = Company.objects.create(name='Other Co')
        outsider = User.objects.create_user(email='out@test.com', password='testpass123', company=outsider_company)
        Proposal.objects.create(number=3, client_name='C', created_by=outsider,
                                **dict(common, company=outsider_company))

    def test_user_sees_own(self):
        client = Client()
        client.login(email='seller@test.com', password='testpass123')

        data = client.get(reverse('proposals:proposal_list')).json()['data']

        self.assertEqual([p['client_name'] for p in data], ['A'])

    def test_admin_sees_company(self):
        """
        Test: Company admin lists proposals

        Expected: Every proposal of the company, none from other companies
        """
        client = Client()
        client.login(email='admin@test.com', password='testpass123')

        data = client.get(reverse('proposals:proposal_list')).json()['data']

        self.assertEqual([p['number'] for p in data], [2, 1])

    def test_superuser_without_company_sees_all(self):
        User.objects.create_superuser(email='root@test.com', password='testpass123')
        client = Client()
        client.login(email='root@test.com', password='testpass123')

        data = client.get(reverse('proposals:proposal_list')).json()['data']

        self.assertEqual([p['number'] for p in data], [3, 2, 1])
