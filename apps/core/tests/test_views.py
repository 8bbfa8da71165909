"""
Core View Tests
===============

Test Coverage:
1. dashboard_stats_view - role scoping and stage distribution
2. public_stats_view - anonymous access
3. company_selector_view - superuser-only company switching

Run tests:
    pytest apps/core/tests/test_views.py
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse

from apps.core.models import Company
from apps.leads.models import Lead

User = get_user_model()


class DashboardStatsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.company = Company.objects.create(name='Energy Co')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123',
                                              company=self.company, role=User.ROLE_ADMIN)
        self.seller = User.objects.create_user(email='seller@test.com', password='testpass123',
                                               company=self.company)

        Lead.objects.create(company=self.company, name='A', phone='31911110000', assigned_to=self.seller,
                            stage=Lead.STAGE_COMPLETED, kwh=Decimal('500'), customer_type='pf')
        Lead.objects.create(company=self.company, name='B', phone='31911110001', stage=Lead.STAGE_UNASSIGNED)
        Lead.objects.create(company=self.company, name='C', phone='31911110002', stage=Lead.STAGE_CONTACT,
                            assigned_to=self.admin)
        Lead.objects.create(company=self.company, name='D', phone='31911110003', assigned_to=self.seller,
                            stage=Lead.STAGE_PROPOSAL)

    def test_admin_sees_company(self):
        self.client.login(email='admin@test.com', password='testpass123')

        data = self.client.get(reverse('core:dashboard_stats')).json()['data']

        self.assertEqual(data['total_leads'], 4)
        self.assertEqual(data['new_today'], 4)
        self.assertEqual(data['conversion_rate'], 25.0)
        self.assertEqual(Decimal(data['completed_kwh']), Decimal('500'))
        by_stage = {item['stage']: item['count'] for item in data['leads_by_stage']}
        self.assertEqual(by_stage[Lead.STAGE_UNASSIGNED], 1)
        self.assertEqual(by_stage[Lead.STAGE_LOST], 0)

    def test_seller_sees_own_leads(self):
        self.client.login(email='seller@test.com', password='testpass123')

        data = self.client.get(reverse('core:dashboard_stats')).json()['data']

        self.assertEqual(data['total_leads'], 2)
        self.assertEqual(data['conversion_rate'], 50.0)
        self.assertIn('personal_balance', data['balances'])

    def test_requires_login(self):
        response = self.client.get(reverse('core:dashboard_stats'))

        self.assertEqual(response.status_code, 401)

    def test_public_stats_without_login(self):
        response = self.client.get(reverse('core:public_stats'))

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(Decimal(data['total_kwh']), Decimal('500'))
        self.assertEqual(data['pf_count'], 1)
        self.assertEqual(data['pj_count'], 0)


class CompanySelectorTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.first = Company.objects.create(name='First Co')
        self.second = Company.objects.create(name='Second Co')
        self.superuser = User.objects.create_superuser(email='root@test.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123',
                                              company=self.first, role=User.ROLE_ADMIN)

    def test_superuser_switches_company(self):
        """
        Test: Superuser selects a company, then opens the dashboard

        Expected: Dashboard numbers come from the selected company
        """
        Lead.objects.create(company=self.second, name='Lead', phone='31911110000')
        self.client.login(email='root@test.com', password='testpass123')

        response = self.client.post(f"{reverse('core:company_selector')}?company_id={self.second.id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['selected_company_id'], self.second.id)
        self.assertEqual(len(response.json()['data']['companies']), 2)

        stats = self.client.get(reverse('core:dashboard_stats')).json()['data']
        self.assertEqual(stats['total_leads'], 1)

    def test_superuser_without_selection(self):
        self.client.login(email='root@test.com', password='testpass123')

        response = self.client.get(reverse('core:dashboard_stats'))

        self.assertEqual(response.status_code, 400)

    def test_unknown_company(self):
        self.client.login(email='root@test.com', password='testpass123')

        response = self.client.post(f"{reverse('core:company_selector')}?company_id=999")

        self.assertEqual(response.status_code, 404)

    def test_admin_cannot_switch(self):
        self.client.login(email='admin@test.com', password='testpass123')

        response = self.client.get(reverse('core:company_selector'))

        self.assertEqual(response.status_code, 403)
