from decimal import Decimal

from django import forms
from django.forms.models import model_to_dict

from apps.core.utils import only_digits
from .models import InvoiceClient, ConsumerUnit


class InvoiceClientForm(forms.ModelForm):
    class Meta:
        model = InvoiceClient
        fields = [
            'name',
            'person_type',
            'voltage',
            'status',
            'feedback_notes',
            'contact_phone',
            'contact_email',
        ]

    def __init__(self, data=None, *args, **kwargs):
        instance = kwargs.get('instance')
        # Fields missing from a partial update keep their current value
        if data is not None and instance is not None and instance.pk:
            merged = model_to_dict(instance, fields=self._meta.fields)
            merged.update(data)
            data = merged
        super().__init__(data, *args, **kwargs)
        # New clients fall back to the model defaults
        for name in ('person_type', 'voltage', 'status'):
            self.fields[name].required = False

    def clean_contact_phone(self):
        return only_digits(self.cleaned_data.get('contact_phone'))

    def clean(self):
        cleaned_data = super().clean()
        for name in ('person_type', 'voltage', 'status'):
            if not cleaned_data.get(name):
                cleaned_data[name] = getattr(self.instance, name)
        return cleaned_data


class ConsumerUnitForm(forms.ModelForm):
    class Meta:
        model = ConsumerUnit
        fields = [
            'consumption_kwh',
            'has_generation',
            'city',
            'utility',
            'installation_code',
            'invoice_file_name',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['consumption_kwh'].required = False

    def clean_consumption_kwh(self):
        value = self.cleaned_data.get('consumption_kwh') or Decimal('0')
        if value < 0:
            raise forms.ValidationError('Consumption cannot be negative.')
        return value
