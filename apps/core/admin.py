from django.contrib import admin
from django.utils.html import format_html
from .models import Company, LeadSource, UserEvent, SequenceCounter


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):

    list_display = [
        'name',
        'document',
        'contact_info',
        'status_badge',
        'users_count',
        'created_at'
    ]
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'document', 'email', 'phone']
    prepopulated_fields = {'slug': ('name',)}
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'slug', 'document')
        }),
        ('Contact Information', {
            'fields': ('phone', 'email')
        }),
        ('Status', {
            'fields': ('is_active',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def contact_info(self, obj):
        if not (obj.phone or obj.email):
            return '-'
        return format_html('<div style="line-height: 1.5;">{}<br>{}</div>', obj.phone, obj.email)

    contact_info.short_description = 'Contact'

    def status_badge(self, obj):
        if obj.is_active:
            return format_html(
                '<span style="background-color: #28a745; color: white; '
                'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
                'Active</span>'
            )
        return format_html(
            '<span style="background-color: #dc3545; color: white; '
            'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
            'Inactive</span>'
        )

    status_badge.short_description = 'Status'

    def users_count(self, obj):
        return format_html(
            '<span style="color: #667eea; font-weight: bold;">{} users</span>',
            obj.get_active_users_count()
        )

    users_count.short_description = 'Users'


@admin.register(LeadSource)
class LeadSourceAdmin(admin.ModelAdmin):

    list_display = ['order', 'name', 'color_preview', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name']
    ordering = ['order', 'name']

    def color_preview(self, obj):
        return format_html(
            '<div style="width: 40px; height: 20px; background-color: {}; '
            'border-radius: 3px; border: 1px solid #ddd;"></div>',
            obj.color
        )

    color_preview.short_description = 'Color'


@admin.register(UserEvent)
class UserEventAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'event_type', 'user_email', 'user_role', 'page']
    list_filter = ['event_type', 'user_role', 'created_at']
    search_fields = ['user_email', 'page']
    date_hierarchy = 'created_at'
    readonly_fields = ['event_type', 'user', 'user_email', 'user_role', 'page', 'metadata', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ['name', 'value']
    readonly_fields = ['name']
