from django.contrib import admin

from apps.core.utils import format_brl
from .models import Proposal


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ['number', 'client_name', 'client_city', 'consumption_kwh', 'discount_percentage',
                    'saving_display', 'partner', 'created_by', 'created_at']
    list_filter = ['partner', 'status', 'created_at']
    search_fields = ['client_name', 'client_document', 'generator_name']
    readonly_fields = ['number', 'created_by', 'company', 'created_at']
    date_hierarchy = 'created_at'

    def saving_display(self, obj):
        return f"{format_brl(obj.annual_saving())}/year"
    saving_display.short_description = 'Annual saving'
