from django import forms

from .models import Proposal


class ProposalForm(forms.ModelForm):
    class Meta:
        model = Proposal
        fields = [
            'client_name',
            'client_document',
            'client_city',
            'consumption_kwh',
            'current_tariff',
            'discount_percentage',
            'partner',
            'generator_name',
            'extra_data',
        ]

    def clean_consumption_kwh(self):
        value = self.cleaned_data['consumption_kwh']
        if value <= 0:
            raise forms.ValidationError('Consumption must be greater than zero.')
        return value

    def clean_extra_data(self):
        return self.cleaned_data.get('extra_data') or {}

    def clean_discount_percentage(self):
        value = self.cleaned_data['discount_percentage']
        if not 0 <= value <= 100:
            raise forms.ValidationError('Discount must be between 0 and 100.')
        return value
