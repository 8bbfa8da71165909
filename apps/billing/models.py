# Models:
# 1. Coupon - Discount codes for credit packs
# 2. PaymentEvent - Each processed gateway delivery (idempotency key)
# 3. Commission - Referral payouts (append-only)
# 4. CreditTransaction - Credit ledger (append-only)

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Coupon(models.Model):
    TYPE_PERCENT = 'percent'
    TYPE_FIXED = 'fixed'
    TYPE_CHOICES = [
        (TYPE_PERCENT, _('Percentage')),
        (TYPE_FIXED, _('Fixed amount')),
    ]

    code = models.CharField(_('code'), max_length=30, unique=True, help_text=_('Stored uppercase'))
    discount_type = models.CharField(_('discount type'), max_length=10, choices=TYPE_CHOICES, default=TYPE_PERCENT)
    discount_value = models.DecimalField(_('discount value'), max_digits=10, decimal_places=2)
    min_purchase = models.DecimalField(_('minimum purchase'), max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(_('active'), default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Coupon')
        verbose_name_plural = _('Coupons')
        ordering = ['code']

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def apply(self, price):
        """Discounted price, never below zero."""
        if self.discount_type == self.TYPE_PERCENT:
            discounted = price - price * self.discount_value / Decimal('100')
        else:
            discounted = price - self.discount_value
        return max(discounted, Decimal('0'))


class PaymentEvent(models.Model):
    """
    One gateway delivery that reached the credit ledger

    (gateway_payment_id, event_type) is unique: a replayed delivery
    finds its row and is answered as a duplicate without side effects.
    """

    STATUS_PROCESSED = 'processed'
    STATUS_IGNORED = 'ignored'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_PROCESSED, _('Processed')),
        (STATUS_IGNORED, _('Ignored')),
        (STATUS_FAILED, _('Failed')),
    ]

    gateway_payment_id = models.CharField(_('gateway payment ID'), max_length=100, db_index=True)
    event_type = models.CharField(_('event type'), max_length=50)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='payment_events')
    value = models.DecimalField(_('value'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    description = models.CharField(_('description'), max_length=255, blank=True)
    status = models.CharField(_('status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_PROCESSED)
    credits_granted = models.PositiveIntegerField(_('credits granted'), default=0)
    commission_amount = models.DecimalField(_('commission paid'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payload = models.JSONField(_('raw payload'), default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Payment Event')
        verbose_name_plural = _('Payment Events')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['gateway_payment_id', 'event_type'], name='unique_payment_event'),
        ]

    def __str__(self):
        return f"{self.event_type} {self.gateway_payment_id} ({self.status})"


class Commission(models.Model):
    STATUS_PAID = 'paid'
    STATUS_CHOICES = [
        (STATUS_PAID, _('Paid')),
    ]

    affiliate = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='commissions_received',
                                  help_text=_('Referrer who receives the commission'))
    from_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                  related_name='commissions_generated', help_text=_('Referred user who paid'))
    amount = models.DecimalField(_('amount'), max_digits=12, decimal_places=2)
    base_amount = models.DecimalField(_('payment amount'), max_digits=12, decimal_places=2)
    status = models.CharField(_('status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_PAID)
    payment_event = models.ForeignKey(PaymentEvent, on_delete=models.SET_NULL, null=True, blank=True,
                                      related_name='commissions')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Commission')
        verbose_name_plural = _('Commissions')
        ordering = ['-created_at']

    def __str__(self):
        return f"R$ {self.amount} to {self.affiliate.email}"


class CreditTransaction(models.Model):
    REASON_PURCHASE = 'purchase'
    REASON_PLAN = 'plan'
    REASON_UNLOCK_CONTACT = 'unlock_contact'
    REASON_PROPOSAL = 'proposal'
    REASON_ADJUSTMENT = 'adjustment'
    REASON_CHOICES = [
        (REASON_PURCHASE, _('Credit purchase')),
        (REASON_PLAN, _('Plan payment')),
        (REASON_UNLOCK_CONTACT, _('Contact unlock')),
        (REASON_PROPOSAL, _('Proposal generation')),
        (REASON_ADJUSTMENT, _('Manual adjustment')),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='credit_transactions')
    delta = models.IntegerField(_('delta'), help_text=_('Positive for grants, negative for debits'))
    balance_after = models.IntegerField(_('balance after'))
    reason = models.CharField(_('reason'), max_length=30, choices=REASON_CHOICES)
    description = models.CharField(_('description'), max_length=255, blank=True)
    reference = models.CharField(_('reference'), max_length=100, blank=True,
                                 help_text=_('Payment id, invoice id or proposal number'))
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Credit Transaction')
        verbose_name_plural = _('Credit Transactions')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        sign = '+' if self.delta >= 0 else ''
        return f"{self.user.email}: {sign}{self.delta} ({self.reason})"
