import logging

from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required, company_required, same_company_required
from apps.billing.ledger import InsufficientCreditsError
from apps.core.responses import (
    parse_json, json_success, json_error, invalid_json_response,
    form_errors_response, server_error_response,
)
from .forms import InvoiceClientForm, ConsumerUnitForm
from .models import InvoiceClient
from .pricing import calculate_lead_cost, get_lead_tier_name
from .services import register_invoice, unlock_contact

logger = logging.getLogger(__name__)


def invoice_client_to_dict(client, viewer):
    units = list(client.units.all())
    cost = calculate_lead_cost(units[0].consumption_kwh if units else 0)
    visible = client.contact_visible_to(viewer)
    return {
        'id': client.id,
        'name': client.name,
        'person_type': client.person_type,
        'voltage': client.voltage,
        'status': client.status,
        'feedback_notes': client.feedback_notes,
        'contact_unlocked': visible,
        'contact_phone': client.contact_phone if visible else None,
        'contact_email': client.contact_email if visible else None,
        'unlock_cost': cost,
        'tier': get_lead_tier_name(cost),
        'units': [
            {
                'consumption_kwh': str(unit.consumption_kwh),
                'has_generation': unit.has_generation,
                'city': unit.city,
                'utility': unit.utility,
                'installation_code': unit.installation_code,
                'invoice_file_name': unit.invoice_file_name,
            }
            for unit in units
        ],
        'last_updated_by': client.last_updated_by.get_full_name() if client.last_updated_by else None,
        'last_updated_at': client.last_updated_at.isoformat() if client.last_updated_at else None,
        'created_at': client.created_at.isoformat(),
    }


@api_login_required
@company_required
@require_http_methods(["GET"])
def invoice_list_view(request):
    clients = InvoiceClient.objects.filter(
        company=request.user.company,
    ).select_related('last_updated_by').prefetch_related('units')

    status = request.GET.get('status')
    if status:
        clients = clients.filter(status=status)

    return json_success([invoice_client_to_dict(client, request.user) for client in clients[:200]])


@api_login_required
@company_required
@require_http_methods(["POST"])
def invoice_register_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    try:
        # Step 1: New client or update of an existing one (same company only)
        instance = None
        client_id = payload.get('id')
        if client_id:
            try:
                instance = InvoiceClient.objects.get(pk=client_id, company=request.user.company)
            except (InvoiceClient.DoesNotExist, ValueError):
                return json_error('InvoiceClient not found', status=404)

        # Step 2: Validate client and units
        client_form = InvoiceClientForm(payload, instance=instance)
        if not client_form.is_valid():
            return form_errors_response(client_form)

        units = payload.get('units') or []
        if not isinstance(units, list) or not all(isinstance(unit, dict) for unit in units):
            return json_error('units must be a list of objects', status=400)

        unit_forms = [ConsumerUnitForm(unit) for unit in units]
        for index, unit_form in enumerate(unit_forms):
            if not unit_form.is_valid():
                return json_error(f'Invalid unit #{index + 1}', status=400, errors=unit_form.errors.get_json_data())

        # Step 3: Save, track, notify
        client = register_invoice(request.user, client_form, unit_forms)

        return json_success(
            invoice_client_to_dict(client, request.user),
            message='Invoice data saved',
            status=201 if instance is None else 200,
        )

    except Exception as e:
        logger.error(f"Unexpected error registering invoice: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@same_company_required(InvoiceClient)
@require_http_methods(["POST"])
def invoice_unlock_view(request, pk):
    try:
        result = unlock_contact(request.user, pk)
    except InsufficientCreditsError as e:
        return json_error(
            'Insufficient credits.',
            status=402,
            code=e.code,
            required=e.required,
            available=e.available,
        )
    except Exception as e:
        logger.error(f"Unexpected error unlocking invoice client {pk}: {str(e)}", exc_info=True)
        return server_error_response()

    client = InvoiceClient.objects.prefetch_related('units').get(pk=pk)
    message = 'Contact already available.' if result['already_unlocked'] else 'Contact unlocked successfully!'
    return json_success(
        invoice_client_to_dict(client, request.user),
        message=message,
        already_unlocked=result['already_unlocked'],
        charged=result['charged'],
    )
