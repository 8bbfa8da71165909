"""
Price tables for credits, referral commissions and the checkout catalog.
"""
from decimal import Decimal

from django.conf import settings

from apps.core.utils import to_cents

# (minimum paid value, credits granted), checked top-down
CREDIT_PRICE_TABLE = [
    (Decimal('900'), 500),
    (Decimal('200'), 100),
    (Decimal('125'), 50),
    (Decimal('30'), 10),
]

KIND_PACK = 'pack'
KIND_SUBSCRIPTION = 'subscription'

CHECKOUT_CATALOG = {
    'pack_10': {'price': Decimal('30.00'), 'name': '10 Credits', 'kind': KIND_PACK},
    'pack_50': {'price': Decimal('125.00'), 'name': '50 Credits', 'kind': KIND_PACK},
    'pack_100': {'price': Decimal('200.00'), 'name': '100 Credits', 'kind': KIND_PACK},
    'pack_whale': {'price': Decimal('900.00'), 'name': '500 Credits (Wholesale)', 'kind': KIND_PACK},
    'plan_sdr_quarterly': {'price': Decimal('150.00'), 'name': 'Plano SDR (Loyalty)', 'kind': KIND_SUBSCRIPTION},
}


def is_sdr_plan_payment(description):
    return settings.SDR_PLAN_MARKER in (description or '')


def credits_for_payment(value, description=''):
    """
    Credits bought by a confirmed payment

    An SDR plan payment (recognized by its description) is worth a fixed
    amount of credits; anything else is classified by the paid value.

    Examples:
        credits_for_payment(Decimal('30'))  -> 10
        credits_for_payment(Decimal('29.99'))  -> 0
        credits_for_payment(Decimal('150'), 'Plano SDR (Loyalty)')  -> 300
    """
    if is_sdr_plan_payment(description):
        return settings.SDR_PLAN_CREDITS

    value = Decimal(str(value or 0))
    for minimum, credits in CREDIT_PRICE_TABLE:
        if value >= minimum:
            return credits
    return 0


def compute_commission(value, rate=None):
    """Referral commission on a payment, rounded half-up to cents."""
    if rate is None:
        rate = settings.REFERRAL_COMMISSION_RATE
    return to_cents(Decimal(str(value or 0)) * Decimal(str(rate)))
