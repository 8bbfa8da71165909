"""
Lead Model Tests
================

Test Coverage:
1. Lead creation signal - 'created' activity
2. assign_to - assignment limit, closed leads, stage move
3. change_stage - signed_at/completed_at stamping
4. add_note - note plus activity

Run tests:
    pytest apps/leads/tests/test_models.py
"""

from django.contrib.auth import get_user_model
from django.test import TestCase

from apps.core.models import Company, LeadSource
from apps.leads.models import Lead, Activity

User = get_user_model()


class LeadModelTest(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name='Energy Co')
        self.seller = User.objects.create_user(
            email='seller@test.com', password='testpass123', first_name='Ana', company=self.company,
            assignment_limit=2,
        )
        self.admin = User.objects.create_user(
            email='admin@test.com', password='testpass123', company=self.company, role=User.ROLE_ADMIN,
        )

    def make_lead(self, **kwargs):
        kwargs.setdefault('company', self.company)
        kwargs.setdefault('name', 'Padaria Central')
        kwargs.setdefault('phone', '31988887777')
        return Lead.objects.create(**kwargs)

    def test_creation_logs_activity(self):
        lead = self.make_lead(source=LeadSource.get_default(LeadSource.REFERRAL))

        activity = Activity.objects.get(lead=lead)
        self.assertEqual(activity.activity_type, 'created')
        self.assertEqual(activity.description, 'Lead created (Referral)')

    def test_assign_moves_unassigned_to_contact(self):
        lead = self.make_lead()

        self.assertTrue(lead.assign_to(self.seller, assigned_by=self.admin))

        lead.refresh_from_db()
        self.assertEqual(lead.assigned_to, self.seller)
        self.assertEqual(lead.stage, Lead.STAGE_CONTACT)
        self.assertTrue(lead.activities.filter(activity_type='assigned').exists())

    def test_assignment_limit(self):
        """
        Test: Seller with limit 2 already holds 2 open leads

        Expected: Third assignment refused; closed leads do not count
        """
        self.make_lead(assigned_to=self.seller, stage=Lead.STAGE_CONTACT)
        self.make_lead(assigned_to=self.seller, stage=Lead.STAGE_PROPOSAL)
        self.make_lead(assigned_to=self.seller, stage=Lead.STAGE_COMPLETED)
        third = self.make_lead()

        self.assertFalse(third.assign_to(self.seller))
        third.refresh_from_db()
        self.assertIsNone(third.assigned_to)

    def test_admin_has_no_limit(self):
        for _ in range(3):
            self.assertTrue(self.make_lead().assign_to(self.admin))

    def test_closed_lead_cannot_be_assigned(self):
        lead = self.make_lead(stage=Lead.STAGE_SIGNED)

        self.assertFalse(lead.assign_to(self.seller))

    def test_change_stage_stamps_dates(self):
        lead = self.make_lead()

        lead.change_stage(Lead.STAGE_SIGNED, user=self.seller)
        self.assertIsNotNone(lead.signed_at)
        self.assertIsNone(lead.completed_at)

        lead.change_stage(Lead.STAGE_COMPLETED, user=self.seller)
        lead.refresh_from_db()
        self.assertIsNotNone(lead.completed_at)

    def test_change_stage_rejects_unknown(self):
        with self.assertRaises(ValueError):
            self.make_lead().change_stage('won')

    def test_add_note(self):
        lead = self.make_lead()

        note = lead.add_note('Client asked for a call on Monday', self.seller)

        self.assertEqual(list(lead.get_notes()), [note])
        self.assertTrue(lead.activities.filter(activity_type='note_added').exists())
