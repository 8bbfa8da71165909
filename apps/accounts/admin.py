from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserCreationForm
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import User


ROLE_COLORS = {
    User.ROLE_SUPERADMIN: '#6f42c1',
    User.ROLE_ADMIN: '#dc3545',
    User.ROLE_SELLER: '#28a745',
    User.ROLE_PROSPECTOR: '#17a2b8',
    User.ROLE_LAWYER: '#fd7e14',
    User.ROLE_USER: '#6c757d',
    User.ROLE_PENDING_SETUP: '#ffc107',
}


class AdminUserCreationForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ('email',)


# CUSTOM USER ADMIN
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    add_form = AdminUserCreationForm
    list_display = (
        'email',
        'get_full_name_display',
        'company',
        'role_badge',
        'credits',
        'personal_balance',
        'mlm_balance',
        'referred_by',
        'is_active_badge',
        'date_joined',
    )
    list_display_links = ('email', 'get_full_name_display')
    list_filter = (
        'role',
        'plan',
        'is_active',
        'mlm_enabled',
        'company',
        'date_joined',
    )
    search_fields = (
        'email',
        'first_name',
        'last_name',
        'phone',
        'document',
        'referral_code',
        'company__name',
    )
    ordering = ('-date_joined',)
    list_per_page = 25
    list_select_related = ('company', 'referred_by')
    raw_id_fields = ('referred_by', 'upline')
    readonly_fields = ('referral_code', 'date_joined', 'last_login', 'updated_at')

    fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'phone', 'document'),
            'classes': ('wide',),
        }),
        (_('Company & Role'), {
            'fields': ('company', 'role'),
            'classes': ('wide',),
        }),
        # Balances are changed through the ledger; edit here only for corrections
        (_('Balances'), {
            'fields': ('credits', 'personal_balance', 'mlm_balance'),
            'description': _('Manual edits bypass the credit history. Prefer credit adjustments.'),
        }),
        (_('Referral & Team'), {
            'fields': ('referral_code', 'referred_by', 'upline', 'mlm_enabled', 'commission_rate', 'recurrence_rate'),
            'classes': ('collapse',),
        }),
        (_('Feature Permissions'), {
            'fields': ('can_view_lead_phone', 'can_view_crm', 'can_view_career_plan', 'assignment_limit'),
        }),
        (_('Billing'), {
            'fields': ('plan', 'subscription_id', 'asaas_customer_id'),
            'classes': ('collapse',),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Activity Tracking'), {
            'fields': ('date_joined', 'last_login', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    # Fields shown when creating NEW user
    add_fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password1', 'password2'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'phone'),
        }),
        (_('Company & Role'), {
            'fields': ('company', 'role'),
        }),
    )

    def get_full_name_display(self, obj):
        return obj.get_full_name()
    get_full_name_display.short_description = _('Name')

    def role_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#6c757d'),
            obj.get_role_display(),
        )
    role_badge.short_description = _('Role')

    def is_active_badge(self, obj):
        if obj.is_active:
            return format_html('<span style="color: #28a745;">●</span> {}', _('Active'))
        return format_html('<span style="color: #dc3545;">●</span> {}', _('Inactive'))
    is_active_badge.short_description = _('Status')
