from django.contrib import admin
from django.utils.html import format_html

from .models import WithdrawalRequest
from .services import WithdrawalError, update_withdrawal_status

STATUS_COLORS = {
    WithdrawalRequest.STATUS_PENDING: '#ffc107',
    WithdrawalRequest.STATUS_PROCESSING: '#17a2b8',
    WithdrawalRequest.STATUS_COMPLETED: '#28a745',
    WithdrawalRequest.STATUS_FAILED: '#dc3545',
}


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    list_display = ['requested_at', 'user_email', 'amount', 'withdrawal_type', 'pix_key_type', 'pix_key',
                    'status_badge', 'processed_at']
    list_filter = ['status', 'withdrawal_type', 'pix_key_type', 'requested_at']
    search_fields = ['user_email', 'user_name', 'pix_key']
    readonly_fields = ['user', 'user_name', 'user_email', 'amount', 'withdrawal_type', 'pix_key_type', 'pix_key',
                       'status', 'requested_at', 'processed_at', 'refunded_at']
    date_hierarchy = 'requested_at'
    actions = ['mark_completed', 'mark_failed']

    def has_add_permission(self, request):
        return False

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6c757d'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def _set_status(self, request, queryset, status):
        updated = skipped = 0
        for withdrawal in queryset:
            try:
                update_withdrawal_status(withdrawal.pk, status)
                updated += 1
            except WithdrawalError:
                skipped += 1
        self.message_user(request, f"{updated} request(s) updated, {skipped} already processed.")

    def mark_completed(self, request, queryset):
        self._set_status(request, queryset, WithdrawalRequest.STATUS_COMPLETED)
    mark_completed.short_description = 'Mark selected as completed'

    def mark_failed(self, request, queryset):
        self._set_status(request, queryset, WithdrawalRequest.STATUS_FAILED)
    mark_failed.short_description = 'Mark selected as failed (refund balance)'
