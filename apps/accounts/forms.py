from django import forms
from django.forms.models import model_to_dict
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from apps.core.utils import only_digits

User = get_user_model()


# LOGIN FORM
class LoginForm(forms.Form):
    email = forms.EmailField(label=_('Email Address'), max_length=255)
    password = forms.CharField(label=_('Password'))
    remember = forms.BooleanField(label=_('Remember me'), required=False)

    def clean_email(self):
        email = self.cleaned_data.get('email', '')
        return email.lower().strip()


# SELF REGISTRATION FORM
class RegisterForm(forms.Form):
    """
    Public sign-up

    New accounts start as sellers; an optional referral code links the
    new user to the referrer who will earn commission on their payments.
    """

    name = forms.CharField(label=_('Name'), min_length=2, max_length=100)
    email = forms.EmailField(label=_('Email Address'), max_length=255)
    password = forms.CharField(label=_('Password'), min_length=6)
    referral_code = forms.CharField(label=_('Referral code'), max_length=12, required=False)

    def clean_email(self):
        email = self.cleaned_data.get('email', '').lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError(_('This email is already in use.'))
        return email

    def clean_referral_code(self):
        code = self.cleaned_data.get('referral_code', '').strip().upper()
        if not code:
            return None
        try:
            return User.objects.get(referral_code=code, is_active=True)
        except User.DoesNotExist:
            raise ValidationError(_('Invalid referral code.'))

    def clean_password(self):
        password = self.cleaned_data.get('password')
        validate_password(password)
        return password

    def save(self):
        first_name, _sep, last_name = self.cleaned_data['name'].strip().partition(' ')
        referrer = self.cleaned_data.get('referral_code')
        return User.objects.create_user(
            email=self.cleaned_data['email'],
            password=self.cleaned_data['password'],
            first_name=first_name,
            last_name=last_name,
            role=User.ROLE_SELLER,
            referred_by=referrer,
            upline=referrer,
            company=referrer.company if referrer else None,
            can_view_career_plan=True,
        )


# ADMIN USER CREATE FORM
class UserCreateForm(forms.ModelForm):
    password = forms.CharField(label=_('Password'), min_length=6)

    class Meta:
        model = User
        fields = [
            'email',
            'first_name',
            'last_name',
            'phone',
            'document',
            'role',
            'upline',
            'commission_rate',
            'mlm_enabled',
            'can_view_lead_phone',
            'can_view_crm',
            'can_view_career_plan',
            'assignment_limit',
        ]

    def clean_email(self):
        email = self.cleaned_data.get('email', '').lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError(_('This email is already in use.'))
        return email

    def clean_document(self):
        document = only_digits(self.cleaned_data.get('document'))
        if not document:
            return None
        if len(document) not in (11, 14):
            raise ValidationError(_('Document must be a CPF (11 digits) or CNPJ (14 digits).'))
        if User.objects.filter(document=document).exists():
            raise ValidationError(_('This CPF/CNPJ is already registered.'))
        return document

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data['password'])
        if commit:
            user.save()
        return user


# ADMIN PERMISSIONS FORM
class UserPermissionsForm(forms.ModelForm):
    """Partial update of role, permission flags and commercial settings."""

    class Meta:
        model = User
        fields = [
            'role',
            'is_active',
            'upline',
            'commission_rate',
            'recurrence_rate',
            'mlm_enabled',
            'can_view_lead_phone',
            'can_view_crm',
            'can_view_career_plan',
            'assignment_limit',
        ]

    def __init__(self, data=None, *args, **kwargs):
        instance = kwargs.get('instance')
        # Fields missing from a partial payload keep their current value
        if data is not None and instance is not None:
            merged = model_to_dict(instance, fields=self._meta.fields)
            merged.update(data)
            data = merged
        super().__init__(data, *args, **kwargs)

    def clean_upline(self):
        upline = self.cleaned_data.get('upline')
        if upline and upline.pk == self.instance.pk:
            raise ValidationError(_('A user cannot be their own upline.'))
        return upline
