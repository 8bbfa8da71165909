from django.contrib import admin
from django.utils.html import format_html

from .models import Coupon, PaymentEvent, Commission, CreditTransaction


class ReadOnlyAdmin(admin.ModelAdmin):
    """Ledger rows are written by the billing services only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ['code', 'discount_type', 'discount_value', 'min_purchase', 'is_active', 'created_at']
    list_filter = ['discount_type', 'is_active']
    search_fields = ['code']


@admin.register(PaymentEvent)
class PaymentEventAdmin(ReadOnlyAdmin):
    list_display = ['created_at', 'event_type', 'gateway_payment_id', 'user', 'value',
                    'credits_granted', 'commission_amount', 'status_badge']
    list_filter = ['event_type', 'status', 'created_at']
    search_fields = ['gateway_payment_id', 'user__email', 'description']
    date_hierarchy = 'created_at'

    def status_badge(self, obj):
        colors = {
            PaymentEvent.STATUS_PROCESSED: '#28a745',
            PaymentEvent.STATUS_IGNORED: '#6c757d',
            PaymentEvent.STATUS_FAILED: '#dc3545',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            colors.get(obj.status, '#6c757d'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'


@admin.register(Commission)
class CommissionAdmin(ReadOnlyAdmin):
    list_display = ['created_at', 'affiliate', 'from_user', 'amount', 'base_amount', 'status']
    list_filter = ['status', 'created_at']
    search_fields = ['affiliate__email', 'from_user__email']
    date_hierarchy = 'created_at'


@admin.register(CreditTransaction)
class CreditTransactionAdmin(ReadOnlyAdmin):
    list_display = ['created_at', 'user', 'delta', 'balance_after', 'reason', 'reference']
    list_filter = ['reason', 'created_at']
    search_fields = ['user__email', 'reference', 'description']
    date_hierarchy = 'created_at'
