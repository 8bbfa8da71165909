from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.models import Company
from .pricing import calculate_lead_cost


class InvoiceClient(models.Model):
    """
    A prospect digitized from an energy bill

    Contact fields stay hidden until a user unlocks them (paid in credits
    unless the user's role unlocks for free).
    """

    PERSON_TYPE_CHOICES = [
        ('pf', _('Individual (CPF)')),
        ('pj', _('Company (CNPJ)')),
    ]
    VOLTAGE_CHOICES = [
        ('low', _('Low voltage')),
        ('high', _('High voltage')),
    ]

    STATUS_NONE = 'none'
    STATUS_CONTACT = 'contact'
    STATUS_PROPOSAL = 'proposal'
    STATUS_CLOSING = 'closing'
    STATUS_CLOSED = 'closed'
    STATUS_CHOICES = [
        (STATUS_NONE, _('No status')),
        (STATUS_CONTACT, _('Contact made')),
        (STATUS_PROPOSAL, _('Proposal sent')),
        (STATUS_CLOSING, _('Closing')),
        (STATUS_CLOSED, _('Closed')),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='invoice_clients')
    name = models.CharField(_('name'), max_length=200)
    person_type = models.CharField(_('person type'), max_length=2, choices=PERSON_TYPE_CHOICES, default='pf')
    voltage = models.CharField(_('voltage'), max_length=4, choices=VOLTAGE_CHOICES, default='low')
    status = models.CharField(_('status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_NONE, db_index=True)
    feedback_notes = models.TextField(_('feedback notes'), blank=True)

    # Hidden until unlocked
    contact_phone = models.CharField(_('contact phone'), max_length=20, blank=True)
    contact_email = models.EmailField(_('contact email'), blank=True)

    is_unlocked = models.BooleanField(_('unlocked'), default=False, help_text=_('Unlocked by at least one user'))
    unlocked_by = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='unlocked_invoice_clients', blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='invoice_clients_created')
    last_updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                        related_name='+')
    last_updated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Invoice Client')
        verbose_name_plural = _('Invoice Clients')
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def first_unit_kwh(self):
        unit = self.units.order_by('order', 'id').first()
        return unit.consumption_kwh if unit else Decimal('0')

    def unlock_cost(self):
        return calculate_lead_cost(self.first_unit_kwh())

    def contact_visible_to(self, user):
        if user.unlocks_for_free():
            return True
        return self.unlocked_by.filter(pk=user.pk).exists()


class ConsumerUnit(models.Model):
    invoice_client = models.ForeignKey(InvoiceClient, on_delete=models.CASCADE, related_name='units')
    consumption_kwh = models.DecimalField(_('consumption (kWh)'), max_digits=12, decimal_places=2, default=Decimal('0'))
    has_generation = models.BooleanField(_('has own generation'), default=False)
    city = models.CharField(_('city'), max_length=100, blank=True)
    utility = models.CharField(_('utility'), max_length=100, blank=True)
    installation_code = models.CharField(_('installation code'), max_length=50, blank=True)
    invoice_file_name = models.CharField(_('invoice file'), max_length=255, blank=True)
    order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        verbose_name = _('Consumer Unit')
        verbose_name_plural = _('Consumer Units')
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.invoice_client.name} - {self.consumption_kwh} kWh"
