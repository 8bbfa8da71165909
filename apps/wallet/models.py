# Models:
# 1. WithdrawalRequest - A seller asking to cash out a balance over PIX

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class WithdrawalRequest(models.Model):
    """
    Withdrawal of personal or referral (mlm) balance

    The amount leaves the balance when the request is created; a request
    marked failed gives it back exactly once (see refunded_at).
    """

    PIX_CPF_CNPJ = 'cpf_cnpj'
    PIX_PHONE = 'phone'
    PIX_EMAIL = 'email'
    PIX_RANDOM = 'random'
    PIX_KEY_TYPE_CHOICES = [
        (PIX_CPF_CNPJ, _('CPF/CNPJ')),
        (PIX_PHONE, _('Phone')),
        (PIX_EMAIL, _('Email')),
        (PIX_RANDOM, _('Random key')),
    ]

    TYPE_PERSONAL = 'personal'
    TYPE_MLM = 'mlm'
    TYPE_CHOICES = [
        (TYPE_PERSONAL, _('Personal balance')),
        (TYPE_MLM, _('Referral balance')),
    ]

    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_PENDING, _('Pending')),
        (STATUS_PROCESSING, _('Processing')),
        (STATUS_COMPLETED, _('Completed')),
        (STATUS_FAILED, _('Failed')),
    ]
    FINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                             related_name='withdrawals', verbose_name=_('user'))
    user_name = models.CharField(_('user name'), max_length=255, blank=True)
    user_email = models.EmailField(_('user email'), blank=True)

    amount = models.DecimalField(_('amount'), max_digits=12, decimal_places=2)
    pix_key_type = models.CharField(_('PIX key type'), max_length=10, choices=PIX_KEY_TYPE_CHOICES)
    pix_key = models.CharField(_('PIX key'), max_length=140)
    withdrawal_type = models.CharField(_('withdrawal type'), max_length=10, choices=TYPE_CHOICES,
                                       default=TYPE_PERSONAL)

    status = models.CharField(_('status'), max_length=12, choices=STATUS_CHOICES,
                              default=STATUS_PENDING, db_index=True)
    admin_notes = models.TextField(_('admin notes'), blank=True)

    requested_at = models.DateTimeField(_('requested at'), auto_now_add=True, db_index=True)
    processed_at = models.DateTimeField(_('processed at'), null=True, blank=True)
    refunded_at = models.DateTimeField(_('refunded at'), null=True, blank=True)

    class Meta:
        verbose_name = _('Withdrawal Request')
        verbose_name_plural = _('Withdrawal Requests')
        ordering = ['-requested_at', '-id']

    def __str__(self):
        return f"{self.user_email} - R$ {self.amount} ({self.get_status_display()})"

    def balance_field(self):
        return 'mlm_balance' if self.withdrawal_type == self.TYPE_MLM else 'personal_balance'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'user_email': self.user_email,
            'amount': str(self.amount),
            'pix_key_type': self.pix_key_type,
            'pix_key': self.pix_key,
            'withdrawal_type': self.withdrawal_type,
            'status': self.status,
            'admin_notes': self.admin_notes,
            'requested_at': self.requested_at.isoformat() if self.requested_at else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
        }
