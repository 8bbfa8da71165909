"""
Credit ledger

Every change to User.credits goes through grant_credits()/debit_credits(),
which update the counter with F() expressions and append a
CreditTransaction in the same transaction.
"""
import logging

from django.db import transaction
from django.db.models import F

from apps.accounts.models import User
from .models import CreditTransaction

logger = logging.getLogger(__name__)


class InsufficientCreditsError(Exception):
    """The user does not have enough credits for the operation."""

    code = 'no_credits'

    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits: {required} required, {available} available")


def grant_credits(user, amount, reason, description='', reference=''):
    """
    Add credits to a user

    Returns:
        CreditTransaction: the ledger entry
    """
    if amount <= 0:
        raise ValueError("Credit grants must be positive")

    with transaction.atomic():
        User.objects.filter(pk=user.pk).update(credits=F('credits') + amount)
        balance = User.objects.values_list('credits', flat=True).get(pk=user.pk)
        entry = CreditTransaction.objects.create(
            user_id=user.pk,
            delta=amount,
            balance_after=balance,
            reason=reason,
            description=description[:255],
            reference=str(reference)[:100],
        )

    user.credits = balance
    logger.info(f"Granted {amount} credits to {user.email} ({reason}); balance {balance}")
    return entry


def debit_credits(user, amount, reason, description='', reference=''):
    """
    Spend credits, locking the user row for the check-then-write

    Raises:
        InsufficientCreditsError: balance below amount (nothing is changed)
    """
    if amount <= 0:
        raise ValueError("Credit debits must be positive")

    with transaction.atomic():
        available = User.objects.select_for_update().values_list('credits', flat=True).get(pk=user.pk)
        if available < amount:
            raise InsufficientCreditsError(amount, available)

        User.objects.filter(pk=user.pk).update(credits=F('credits') - amount)
        balance = available - amount
        entry = CreditTransaction.objects.create(
            user_id=user.pk,
            delta=-amount,
            balance_after=balance,
            reason=reason,
            description=description[:255],
            reference=str(reference)[:100],
        )

    user.credits = balance
    logger.info(f"Debited {amount} credits from {user.email} ({reason}); balance {balance}")
    return entry


def credit_history(user, limit=100):
    return CreditTransaction.objects.filter(user=user).order_by('-created_at', '-id')[:limit]
