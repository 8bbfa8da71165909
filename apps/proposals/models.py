from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.models import Company


class Proposal(models.Model):
    """Commercial proposal generated from a client's energy bill."""

    STATUS_GENERATED = 'generated'
    STATUS_CHOICES = [
        (STATUS_GENERATED, _('Generated')),
    ]

    number = models.PositiveIntegerField(_('number'), unique=True, help_text=_('Sequential proposal number'))
    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='proposals')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True,
                                   related_name='proposals')
    generator_name = models.CharField(_('generated by'), max_length=200, blank=True)

    client_name = models.CharField(_('client name'), max_length=200)
    client_document = models.CharField(_('client CPF/CNPJ'), max_length=18, blank=True)
    client_city = models.CharField(_('client city'), max_length=120, blank=True)

    consumption_kwh = models.DecimalField(_('consumption (kWh)'), max_digits=12, decimal_places=2)
    current_tariff = models.DecimalField(_('current tariff (R$/kWh)'), max_digits=10, decimal_places=6)
    discount_percentage = models.DecimalField(_('discount (%)'), max_digits=5, decimal_places=2)
    partner = models.CharField(_('energy partner'), max_length=120, blank=True)

    extra_data = models.JSONField(_('bill fields'), default=dict, blank=True,
                                  help_text=_('Remaining fields read from the bill'))
    status = models.CharField(_('status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_GENERATED)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('Proposal')
        verbose_name_plural = _('Proposals')
        ordering = ['-number']

    def __str__(self):
        return f"#{self.number} - {self.client_name}"

    def annual_saving(self):
        """kWh x tariff x 12 months x discount"""
        return self.consumption_kwh * self.current_tariff * 12 * self.discount_percentage / Decimal('100')
