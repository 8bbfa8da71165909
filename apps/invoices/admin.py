from django.contrib import admin
from django.utils.html import format_html

from .models import InvoiceClient, ConsumerUnit
from .pricing import get_lead_tier_name


class ConsumerUnitInline(admin.TabularInline):
    model = ConsumerUnit
    extra = 0
    fields = ['order', 'consumption_kwh', 'has_generation', 'city', 'utility', 'installation_code', 'invoice_file_name']


@admin.register(InvoiceClient)
class InvoiceClientAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'company', 'person_type', 'voltage', 'status', 'tier_badge',
                    'is_unlocked', 'last_updated_at']
    list_filter = ['company', 'status', 'person_type', 'voltage', 'is_unlocked']
    search_fields = ['name', 'contact_phone', 'contact_email']
    filter_horizontal = ['unlocked_by']
    readonly_fields = ['created_by', 'last_updated_by', 'last_updated_at', 'created_at', 'updated_at']
    inlines = [ConsumerUnitInline]

    def tier_badge(self, obj):
        cost = obj.unlock_cost()
        return format_html(
            '<span style="background-color: #667eea; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{} ({} cr)</span>',
            get_lead_tier_name(cost),
            cost
        )
    tier_badge.short_description = 'Tier'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('company', 'last_updated_by')
