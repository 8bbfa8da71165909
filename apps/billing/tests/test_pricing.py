"""
Billing Pricing Tests
=====================

Test Coverage:
1. credits_for_payment - price table boundaries and SDR plan marker
2. compute_commission - 10% rounded half-up to cents
3. Coupon.apply - percent / fixed discounts floored at zero

Run tests:
    pytest apps/billing/tests/test_pricing.py
"""

from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from apps.billing.models import Coupon
from apps.billing.pricing import credits_for_payment, compute_commission, CHECKOUT_CATALOG


class CreditsForPaymentTest(SimpleTestCase):

    def test_price_table_boundaries(self):
        cases = [
            (Decimal('0'), 0),
            (Decimal('29.99'), 0),
            (Decimal('30'), 10),
            (Decimal('124.99'), 10),
            (Decimal('125'), 50),
            (Decimal('199.99'), 50),
            (Decimal('200'), 100),
            (Decimal('899.99'), 100),
            (Decimal('900'), 500),
            (Decimal('5000'), 500),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(credits_for_payment(value), expected)

    def test_sdr_plan_description_wins_over_value(self):
        """
        Test: "Plano SDR" in the description grants the plan credits

        Expected: 300 credits regardless of the amount
        """
        self.assertEqual(credits_for_payment(Decimal('150'), 'Plano SDR (Loyalty)'), 300)
        self.assertEqual(credits_for_payment(Decimal('150'), 'Cobrança Plano SDR mensal'), 300)
        # The marker is matched case-sensitively
        self.assertEqual(credits_for_payment(Decimal('10'), 'Cobrança plano sdr mensal'), 0)

    def test_accepts_floats_and_none(self):
        self.assertEqual(credits_for_payment(125.0), 50)
        self.assertEqual(credits_for_payment(None), 0)

    def test_catalog_prices_match_price_table(self):
        self.assertEqual(credits_for_payment(CHECKOUT_CATALOG['pack_10']['price']), 10)
        self.assertEqual(credits_for_payment(CHECKOUT_CATALOG['pack_50']['price']), 50)
        self.assertEqual(credits_for_payment(CHECKOUT_CATALOG['pack_100']['price']), 100)
        self.assertEqual(credits_for_payment(CHECKOUT_CATALOG['pack_whale']['price']), 500)


class ComputeCommissionTest(SimpleTestCase):

    def test_ten_percent(self):
        self.assertEqual(compute_commission(Decimal('200.00')), Decimal('20.00'))
        self.assertEqual(compute_commission(Decimal('30')), Decimal('3.00'))

    def test_rounds_half_up_to_cents(self):
        # 0.10 x 0.05 = 0.005 -> 0.01
        self.assertEqual(compute_commission(Decimal('0.05')), Decimal('0.01'))
        # 0.10 x 123.45 = 12.345 -> 12.35
        self.assertEqual(compute_commission(Decimal('123.45')), Decimal('12.35'))

    def test_custom_rate(self):
        self.assertEqual(compute_commission(Decimal('100'), rate=Decimal('0.25')), Decimal('25.00'))


class CouponApplyTest(TestCase):

    def test_percent_discount(self):
        coupon = Coupon.objects.create(code='promo10', discount_type=Coupon.TYPE_PERCENT, discount_value=Decimal('10'))
        self.assertEqual(coupon.code, 'PROMO10')
        self.assertEqual(coupon.apply(Decimal('200.00')), Decimal('180.00'))

    def test_fixed_discount_floored_at_zero(self):
        coupon = Coupon.objects.create(code='BIG', discount_type=Coupon.TYPE_FIXED, discount_value=Decimal('50'))
        self.assertEqual(coupon.apply(Decimal('125.00')), Decimal('75.00'))
        self.assertEqual(coupon.apply(Decimal('30.00')), Decimal('0'))
