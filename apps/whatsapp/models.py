"""
This module contains models for WhatsApp integration via the Meta Cloud API:
- WhatsAppConfig: Stores API credentials per company
- Message: Stores all incoming/outgoing messages
- Channel: Represents a conversation channel with a lead
"""

from django.db import models
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from apps.core.models import Company
from apps.leads.models import Lead

User = get_user_model()


class WhatsAppConfig(models.Model):

    company = models.OneToOneField(Company, on_delete=models.CASCADE, related_name='whatsapp_config', verbose_name=_('Company'), help_text=_('Company that owns this configuration'))

    phone_number_id = models.CharField(max_length=100, verbose_name=_('Phone Number ID'), help_text=_('WhatsApp Business phone number ID from Meta'))
    access_token = models.CharField(max_length=512, verbose_name=_('Access Token'), help_text=_('Permanent access token for the Graph API'))
    verify_token = models.CharField(max_length=255, unique=True, verbose_name=_('Verify Token'), help_text=_('Token in the webhook URL; also answered on verification'))
    api_version = models.CharField(max_length=10, blank=True, verbose_name=_('API Version'), help_text=_('Graph API version (defaults to WHATSAPP_API_VERSION)'))

    is_active = models.BooleanField(default=True, verbose_name=_('Is Active'), help_text=_('Whether this configuration is active'))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Created At'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('WhatsApp Configuration')
        verbose_name_plural = _('WhatsApp Configurations')
        ordering = ['-created_at']

    def __str__(self):
        return f"WhatsApp Config - {self.company.name}"

    def get_api_version(self):
        return self.api_version or settings.WHATSAPP_API_VERSION

    def get_webhook_url(self):
        return f"{settings.SITE_URL}/api/whatsapp/webhook/{self.verify_token}/"


class Message(models.Model):

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='messages', verbose_name=_('Lead'), help_text=_('Lead associated with this message'))
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sent_messages', verbose_name=_('User'), help_text=_('User who sent this message (null for incoming)'))

    DIRECTION_INCOMING = 'incoming'
    DIRECTION_OUTGOING = 'outgoing'
    DIRECTION_CHOICES = [(DIRECTION_INCOMING, _('Incoming')), (DIRECTION_OUTGOING, _('Outgoing'))]

    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES, verbose_name=_('Direction'))
    content = models.TextField(blank=True, verbose_name=_('Content'), help_text=_('Text content or caption'))
    media_url = models.URLField(max_length=500, blank=True, null=True, verbose_name=_('Media URL'))

    MEDIA_IMAGE = 'image'
    MEDIA_AUDIO = 'audio'
    MEDIA_DOCUMENT = 'document'
    MEDIA_CHOICES = [(MEDIA_IMAGE, _('Image')), (MEDIA_AUDIO, _('Audio')), (MEDIA_DOCUMENT, _('Document'))]

    media_type = models.CharField(max_length=20, choices=MEDIA_CHOICES, blank=True, null=True, verbose_name=_('Media Type'))

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_READ = 'read'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [(STATUS_PENDING, _('Pending')), (STATUS_SENT, _('Sent')),
                      (STATUS_DELIVERED, _('Delivered')), (STATUS_READ, _('Read')),
                      (STATUS_FAILED, _('Failed'))]

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, verbose_name=_('Status'))

    external_message_id = models.CharField(max_length=255, blank=True, null=True, db_index=True, verbose_name=_('External Message ID'), help_text=_('wamid returned by the Cloud API'))

    error_message = models.TextField(blank=True, null=True, verbose_name=_('Error Message'))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Created At'), db_index=True)
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('Message')
        verbose_name_plural = _('Messages')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', 'direction', '-created_at']),
            models.Index(fields=['status', '-created_at']),
        ]

    def __str__(self):
        direction_icon = '→' if self.direction == self.DIRECTION_OUTGOING else '←'
        content_preview = self.content[:50] + '...' if len(self.content) > 50 else self.content
        return f"{direction_icon} {self.lead.name}: {content_preview}"

    def is_outgoing(self):
        return self.direction == self.DIRECTION_OUTGOING

    def has_media(self):
        return bool(self.media_url)

    def mark_as_sent(self, external_message_id=None):
        self.status = self.STATUS_SENT
        if external_message_id:
            self.external_message_id = external_message_id
        self.save(update_fields=['status', 'external_message_id', 'updated_at'])

    def mark_as_failed(self, error_message):
        self.status = self.STATUS_FAILED
        self.error_message = error_message
        self.save(update_fields=['status', 'error_message', 'updated_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'direction': self.direction,
            'content': self.content,
            'media_url': self.media_url,
            'media_type': self.media_type,
            'status': self.status,
            'created_at': self.created_at.isoformat(),
            'user': {
                'id': self.user.id,
                'name': self.user.get_full_name()
            } if self.user else None,
        }


class Channel(models.Model):

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='channels', verbose_name=_('Company'))
    lead = models.OneToOneField(Lead, on_delete=models.CASCADE, related_name='whatsapp_channel', verbose_name=_('Lead'))

    last_message_at = models.DateTimeField(blank=True, null=True, verbose_name=_('Last Message At'), db_index=True)
    unread_count = models.PositiveIntegerField(default=0, verbose_name=_('Unread Count'), help_text=_('Number of unread incoming messages'))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Created At'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('Channel')
        verbose_name_plural = _('Channels')
        ordering = ['-last_message_at']
        indexes = [
            models.Index(fields=['company', '-last_message_at']),
        ]

    def __str__(self):
        return f"WhatsApp - {self.lead.name}"

    def register_message(self, incoming):
        """Stamp the last message time; incoming messages also count as unread."""
        self.last_message_at = timezone.now()
        fields = ['last_message_at', 'updated_at']
        if incoming:
            self.unread_count = models.F('unread_count') + 1
            fields.append('unread_count')
        self.save(update_fields=fields)
        if incoming:
            self.refresh_from_db(fields=['unread_count'])
