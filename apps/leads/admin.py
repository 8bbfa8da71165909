from django.contrib import admin
from django.utils.html import format_html

from .models import Lead, Note, Activity

STAGE_COLORS = {
    Lead.STAGE_UNASSIGNED: '#6c757d',
    Lead.STAGE_CONTACT: '#17a2b8',
    Lead.STAGE_INVOICE: '#ffc107',
    Lead.STAGE_PROPOSAL: '#fd7e14',
    Lead.STAGE_CONTRACT: '#667eea',
    Lead.STAGE_COMPLIANCE: '#6f42c1',
    Lead.STAGE_SIGNED: '#20c997',
    Lead.STAGE_COMPLETED: '#28a745',
    Lead.STAGE_CANCELLED: '#dc3545',
    Lead.STAGE_LOST: '#343a40',
}


class NoteInline(admin.TabularInline):
    model = Note
    extra = 1
    readonly_fields = ['created_at']
    fields = ['user', 'content', 'created_at']
    classes = ['collapse']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('user')


class ActivityInline(admin.TabularInline):
    model = Activity
    extra = 0
    readonly_fields = ['user', 'activity_type', 'description', 'created_at']
    fields = ['created_at', 'user', 'activity_type', 'description']
    classes = ['collapse']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'name',
        'phone',
        'document',
        'kwh',
        'stage_badge',
        'assigned_to_display',
        'created_at_display',
    ]

    list_filter = [
        'company',
        'source',
        'stage',
        'customer_type',
        'commission_paid',
        'recurrence_paid',
        'created_at',
    ]

    search_fields = [
        'name',
        'phone',
        'email',
        'document',
        'installation_code',
    ]

    ordering = ['-created_at']
    list_per_page = 50
    date_hierarchy = 'created_at'

    fieldsets = [
        ('Basic Information', {
            'fields': ['company', 'name', 'phone', 'email', 'document', 'customer_type']
        }),
        ('Energy', {
            'fields': ['kwh', 'value', 'value_after_discount', 'discount_percentage',
                       'installation_code', 'utility', 'plan']
        }),
        ('Pipeline', {
            'fields': ['source', 'stage', 'needs_admin_approval', 'correction_reason']
        }),
        ('Assignment', {
            'fields': ['assigned_to', 'seller_name', 'commission_paid', 'recurrence_paid']
        }),
        ('Dates', {
            'fields': ['signed_at', 'completed_at', 'last_contact', 'created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['updated_at']
    inlines = [NoteInline, ActivityInline]
    actions = ['release_to_pool', 'mark_as_lost']

    def stage_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            STAGE_COLORS.get(obj.stage, '#6c757d'),
            obj.get_stage_display()
        )
    stage_badge.short_description = 'Stage'

    def assigned_to_display(self, obj):
        if obj.assigned_to:
            return obj.assigned_to.get_full_name()
        return format_html('<span style="color: #999;">Unassigned</span>')
    assigned_to_display.short_description = 'Assigned To'

    def created_at_display(self, obj):
        """Display creation date with relative time"""
        return format_html(
            '<span title="{}">{}</span>',
            obj.created_at.strftime('%Y-%m-%d %H:%M:%S'),
            obj.time_since_created()
        )
    created_at_display.short_description = 'Created'

    def release_to_pool(self, request, queryset):
        open_leads = queryset.exclude(stage__in=Lead.CLOSED_STAGES)
        count = open_leads.update(assigned_to=None, stage=Lead.STAGE_UNASSIGNED)
        self.message_user(request, f'Released {count} leads back to the pool')
    release_to_pool.short_description = 'Release to the unassigned pool'

    def mark_as_lost(self, request, queryset):
        for lead in queryset:
            lead.change_stage(Lead.STAGE_LOST, user=request.user)
        self.message_user(request, f'Updated {queryset.count()} leads to "Lost"')
    mark_as_lost.short_description = 'Mark as "Lost"'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('company', 'source', 'assigned_to')


@admin.register(Note)
class NoteAdmin(admin.ModelAdmin):
    list_display = ['id', 'lead', 'user', 'content_preview', 'created_at']
    list_filter = ['created_at', 'user']
    search_fields = ['content', 'lead__name', 'lead__phone']
    ordering = ['-created_at']
    list_per_page = 50
    readonly_fields = ['created_at']

    def content_preview(self, obj):
        return obj.content[:100] + '...' if len(obj.content) > 100 else obj.content
    content_preview.short_description = 'Content'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('lead', 'user')


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['id', 'lead', 'user', 'activity_type', 'description', 'created_at']
    list_filter = ['activity_type', 'created_at']
    search_fields = ['description', 'lead__name', 'lead__phone']
    ordering = ['-created_at']
    list_per_page = 100
    readonly_fields = ['lead', 'user', 'activity_type', 'description', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('lead', 'user')
