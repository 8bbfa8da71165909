from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _


class Company(models.Model):
    # Basic Information
    name = models.CharField(max_length=200, unique=True, help_text="Company name")
    slug = models.SlugField(max_length=200, unique=True, help_text="URL-friendly name (auto-generated)")
    document = models.CharField(max_length=14, blank=True, help_text="CNPJ (digits only)")
    # Contact Information
    phone = models.CharField(max_length=17, blank=True, help_text="Contact phone number")
    email = models.EmailField(blank=True, help_text="Contact email")
    # Status
    is_active = models.BooleanField(default=True, help_text="Is company active?")
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Company"
        verbose_name_plural = "Companies"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['slug']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def get_active_users_count(self):
        return self.users.filter(is_active=True).count()

    def get_total_leads_count(self):
        return self.leads.count()

    def get_active_sellers_count(self):
        return self.users.filter(is_active=True, role='seller').count()


class LeadSource(models.Model):
    # Names of the sources created on first use
    PAID_TRAFFIC = 'Paid Traffic'
    EMAIL_CAMPAIGN = 'Email Campaign'
    DOOR_TO_DOOR = 'Door to Door'
    REFERRAL = 'Referral'
    WHATSAPP = 'WhatsApp'
    OTHER = 'Other'
    DEFAULT_SOURCES = [PAID_TRAFFIC, EMAIL_CAMPAIGN, DOOR_TO_DOOR, REFERRAL, WHATSAPP, OTHER]

    name = models.CharField(max_length=100, unique=True, help_text="Source name (e.g. WhatsApp, Referral)")
    color = models.CharField(max_length=7, default='#667eea', help_text="Hex color code (e.g. #25D366 for WhatsApp green)")
    description = models.TextField(blank=True, help_text="Optional description")
    is_active = models.BooleanField(default=True, help_text="Is this source active?")
    order = models.PositiveIntegerField(default=0, help_text="Display order (lower numbers appear first)")
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Lead Source"
        verbose_name_plural = "Lead Sources"
        ordering = ['order', 'name']

    def __str__(self):
        return self.name

    @classmethod
    def get_default(cls, name):
        """Return the named source, creating it the first time it is needed."""
        order = cls.DEFAULT_SOURCES.index(name) if name in cls.DEFAULT_SOURCES else len(cls.DEFAULT_SOURCES)
        source, _ = cls.objects.get_or_create(name=name, defaults={'order': order, 'is_active': True})
        return source


class UserEvent(models.Model):
    """
    Product analytics event (who did what, where)

    Written through apps.core.tracking.track_event() and never updated.
    """

    LEAD_CREATED = 'lead_created'
    LEAD_VIEWED = 'lead_viewed'
    INVOICE_PROCESSED = 'invoice_processed'
    LEAD_UNLOCKED = 'lead_unlocked'
    EVENT_CHOICES = [
        (LEAD_CREATED, _('Lead Created')),
        (LEAD_VIEWED, _('Lead Viewed')),
        (INVOICE_PROCESSED, _('Invoice Processed')),
        (LEAD_UNLOCKED, _('Lead Unlocked')),
    ]

    event_type = models.CharField(_('event type'), max_length=30, choices=EVENT_CHOICES, db_index=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='events', verbose_name=_('user'))
    user_email = models.EmailField(_('user email'), blank=True, help_text=_('Snapshot of the email at event time'))
    user_role = models.CharField(_('user role'), max_length=20, blank=True)
    page = models.CharField(_('page'), max_length=255, blank=True, help_text=_('Path where the event happened'))
    metadata = models.JSONField(_('metadata'), default=dict, blank=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _('User Event')
        verbose_name_plural = _('User Events')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['event_type', '-created_at']),
        ]

    def __str__(self):
        return f"{self.get_event_type_display()} by {self.user_email or 'anonymous'}"


class SequenceCounter(models.Model):
    """Named counter handing out consecutive numbers (e.g. proposal numbers)."""

    name = models.CharField(max_length=50, unique=True)
    value = models.PositiveBigIntegerField(default=0)

    class Meta:
        verbose_name = "Sequence Counter"
        verbose_name_plural = "Sequence Counters"

    def __str__(self):
        return f"{self.name} = {self.value}"

    @classmethod
    def next_value(cls, name):
        with transaction.atomic():
            counter, _ = cls.objects.select_for_update().get_or_create(name=name)
            cls.objects.filter(pk=counter.pk).update(value=F('value') + 1)
            counter.refresh_from_db(fields=['value'])
            return counter.value
