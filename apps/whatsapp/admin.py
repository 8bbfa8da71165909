"""
This module provides admin interfaces for WhatsApp models:
- WhatsAppConfig: Manage Cloud API credentials per company
- Message: View messages and their delivery status
- Channel: View conversations and unread counts
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from .models import WhatsAppConfig, Message, Channel

STATUS_COLORS = {
    Message.STATUS_PENDING: '#ffc107',
    Message.STATUS_SENT: '#17a2b8',
    Message.STATUS_DELIVERED: '#28a745',
    Message.STATUS_READ: '#007bff',
    Message.STATUS_FAILED: '#dc3545',
}


@admin.register(WhatsAppConfig)
class WhatsAppConfigAdmin(admin.ModelAdmin):
    list_display = ['company', 'phone_number_id', 'api_version', 'status_badge', 'updated_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['company__name', 'phone_number_id']
    readonly_fields = ['created_at', 'updated_at', 'get_webhook_url_display']

    fieldsets = (
        (_('Company Information'), {
            'fields': ('company',)
        }),
        (_('API Credentials'), {
            'fields': ('phone_number_id', 'access_token', 'api_version'),
            'description': _('Phone number ID and permanent token from the Meta developer dashboard')
        }),
        (_('Webhook Configuration'), {
            'fields': ('verify_token', 'get_webhook_url_display'),
        }),
        (_('Status'), {
            'fields': ('is_active',)
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        color, label = ('#28a745', 'Active') if obj.is_active else ('#dc3545', 'Inactive')
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 10px; border-radius: 3px;">{}</span>',
            color, label
        )
    status_badge.short_description = _('Status')

    def get_webhook_url_display(self, obj):
        if obj.pk:
            return format_html(
                '<input type="text" value="{}" readonly style="width: 100%; '
                'padding: 5px; border: 1px solid #ddd;" />',
                obj.get_webhook_url()
            )
        return _('Save first to generate webhook URL')
    get_webhook_url_display.short_description = _('Webhook URL for Meta')


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'direction', 'lead', 'content_preview', 'status_badge', 'media_type', 'created_at']
    list_filter = ['direction', 'status', 'media_type', 'created_at']
    search_fields = ['lead__name', 'lead__phone', 'content', 'external_message_id']
    readonly_fields = ['lead', 'user', 'direction', 'content', 'media_url', 'media_type', 'status',
                       'external_message_id', 'error_message', 'created_at', 'updated_at']
    list_per_page = 50

    def has_add_permission(self, request):
        return False

    def content_preview(self, obj):
        return obj.content[:60] + '...' if len(obj.content) > 60 else obj.content
    content_preview.short_description = _('Content')

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6c757d'),
            obj.get_status_display()
        )
    status_badge.short_description = _('Status')


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display = ['lead', 'company', 'unread_count', 'last_message_at']
    list_filter = ['company']
    search_fields = ['lead__name', 'lead__phone']
    readonly_fields = ['company', 'lead', 'unread_count', 'last_message_at', 'created_at', 'updated_at']
    actions = ['mark_as_read']

    def mark_as_read(self, request, queryset):
        count = queryset.update(unread_count=0)
        self.message_user(request, f'{count} channel(s) marked as read')
    mark_as_read.short_description = _('Mark as read')
