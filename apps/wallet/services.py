"""
Wallet services

Balances move with F() expressions under a row lock on the user, in the
same transaction that writes the WithdrawalRequest.
"""
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.accounts.models import User
from .models import WithdrawalRequest

logger = logging.getLogger(__name__)

AUTO_COMPLETE_NOTE = 'Processed automatically by the system.'


class WithdrawalError(Exception):
    """The withdrawal request is invalid."""


class InsufficientBalanceError(WithdrawalError):
    code = 'insufficient_balance'

    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__('Insufficient balance')


def _parse_amount(value):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise WithdrawalError('Invalid withdrawal amount')
    if not amount.is_finite():
        raise WithdrawalError('Invalid withdrawal amount')
    return amount.quantize(Decimal('0.01'))


def request_withdrawal(user, amount, pix_key_type, pix_key, withdrawal_type):
    """
    Deduct the amount from the chosen balance and open a pending request

    Raises:
        WithdrawalError: missing fields or amount below the minimum
        InsufficientBalanceError: the balance does not cover the amount
    """
    if not (amount and pix_key_type and pix_key and withdrawal_type):
        raise WithdrawalError('Invalid withdrawal request data')

    if pix_key_type not in dict(WithdrawalRequest.PIX_KEY_TYPE_CHOICES):
        raise WithdrawalError('Invalid PIX key type')
    if withdrawal_type not in dict(WithdrawalRequest.TYPE_CHOICES):
        raise WithdrawalError('Invalid withdrawal type')

    amount = _parse_amount(amount)
    minimum = settings.MIN_WITHDRAWAL_AMOUNT
    if amount < minimum:
        raise WithdrawalError(f'The minimum withdrawal amount is R$ {minimum:.2f}')

    with transaction.atomic():
        locked = User.objects.select_for_update().get(pk=user.pk)
        available = locked.get_balance(withdrawal_type)
        if available < amount:
            raise InsufficientBalanceError(amount, available)

        withdrawal = WithdrawalRequest(
            user=locked,
            user_name=locked.get_full_name(),
            user_email=locked.email,
            amount=amount,
            pix_key_type=pix_key_type,
            pix_key=str(pix_key).strip(),
            withdrawal_type=withdrawal_type,
        )
        User.objects.filter(pk=locked.pk).update(**{
            withdrawal.balance_field(): F(withdrawal.balance_field()) - amount,
        })
        withdrawal.save()

    logger.info(f"Withdrawal #{withdrawal.id} requested by {user.email}: R$ {amount} ({withdrawal_type})")
    return withdrawal


def withdrawal_history(user):
    return WithdrawalRequest.objects.filter(user=user)


def update_withdrawal_status(withdrawal_id, status, admin_notes=None):
    """
    Move a request to a new status (admin)

    failed refunds the amount to the originating balance; completed and
    failed stamp processed_at and are terminal.

    Raises:
        WithdrawalError: invalid status, or the request was already processed
    """
    if status not in dict(WithdrawalRequest.STATUS_CHOICES):
        raise WithdrawalError('Invalid status')

    with transaction.atomic():
        withdrawal = WithdrawalRequest.objects.select_for_update().get(pk=withdrawal_id)
        if withdrawal.status in WithdrawalRequest.FINAL_STATUSES:
            raise WithdrawalError('Withdrawal already processed')
        now = timezone.now()

        if status == WithdrawalRequest.STATUS_FAILED and withdrawal.refunded_at is None:
            User.objects.filter(pk=withdrawal.user_id).update(**{
                withdrawal.balance_field(): F(withdrawal.balance_field()) + withdrawal.amount,
            })
            withdrawal.refunded_at = now
            logger.info(f"Withdrawal #{withdrawal.id} failed; refunded R$ {withdrawal.amount}")

        withdrawal.status = status
        if status in WithdrawalRequest.FINAL_STATUSES:
            withdrawal.processed_at = now
        if admin_notes is not None:
            withdrawal.admin_notes = admin_notes
        withdrawal.save()

    return withdrawal


def process_old_withdrawals(now=None):
    """
    Complete pending requests older than WITHDRAWAL_AUTO_COMPLETE_DAYS

    Returns:
        int: number of requests completed
    """
    now = now or timezone.now()
    cutoff = now - timedelta(days=settings.WITHDRAWAL_AUTO_COMPLETE_DAYS)

    count = WithdrawalRequest.objects.filter(
        status=WithdrawalRequest.STATUS_PENDING,
        requested_at__lte=cutoff,
    ).update(
        status=WithdrawalRequest.STATUS_COMPLETED,
        processed_at=now,
        admin_notes=AUTO_COMPLETE_NOTE,
    )

    logger.info(f"Auto-completed {count} pending withdrawal(s)")
    return count
