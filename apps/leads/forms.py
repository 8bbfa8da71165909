from decimal import Decimal

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from apps.core.models import LeadSource
from apps.core.utils import only_digits
from .models import Lead


class LeadForm(forms.ModelForm):
    """Create a lead from the board or the seller's app."""

    source = forms.ModelChoiceField(queryset=LeadSource.objects.filter(is_active=True), required=False)

    class Meta:
        model = Lead
        fields = [
            'name',
            'phone',
            'email',
            'document',
            'kwh',
            'value',
            'source',
            'installation_code',
            'utility',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['kwh'].required = False
        self.fields['value'].required = False

    def clean_kwh(self):
        return self.cleaned_data.get('kwh') or Decimal('0')

    def clean_value(self):
        return self.cleaned_data.get('value') or Decimal('0')

    def clean_phone(self):
        return only_digits(self.cleaned_data.get('phone'))

    def clean_document(self):
        document = only_digits(self.cleaned_data.get('document'))
        if document and len(document) not in (11, 14):
            raise ValidationError('Document must be a CPF (11 digits) or CNPJ (14 digits).')
        return document

    def clean(self):
        cleaned_data = super().clean()
        if not cleaned_data.get('phone') and not cleaned_data.get('email'):
            raise ValidationError('A phone number or an email is required.')
        return cleaned_data

    def save(self, commit=True):
        lead = super().save(commit=False)
        if lead.document:
            lead.customer_type = 'pf' if len(lead.document) == 11 else 'pj'
        if commit:
            lead.save()
        return lead


class LeadImportForm(forms.Form):
    file = forms.FileField(help_text='CSV or Excel (.xlsx) file')

    def clean_file(self):
        uploaded_file = self.cleaned_data['file']
        if uploaded_file.size > settings.LEAD_IMPORT_MAX_FILE_SIZE:
            raise ValidationError('File is too large (max 5 MB).')
        if not uploaded_file.name.lower().endswith(('.csv', '.xlsx')):
            raise ValidationError('Invalid file format. Please upload a .csv or .xlsx file.')
        return uploaded_file


class RecurrenceImportForm(forms.Form):
    file = forms.FileField(help_text='CSV with columns: cliente, documento, parcelas pagas')

    def clean_file(self):
        uploaded_file = self.cleaned_data['file']
        if not uploaded_file.name.lower().endswith('.csv'):
            raise ValidationError('Invalid file format. Please upload a .csv file.')
        return uploaded_file
