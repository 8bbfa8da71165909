import logging

from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from apps.billing.ledger import InsufficientCreditsError
from apps.core.responses import (
    parse_json, json_success, json_error, invalid_json_response,
    form_errors_response, server_error_response,
)
from .forms import ProposalForm
from .models import Proposal
from .services import save_proposal

logger = logging.getLogger(__name__)


def proposal_to_dict(proposal):
    return {
        'id': proposal.id,
        'number': proposal.number,
        'client_name': proposal.client_name,
        'client_document': proposal.client_document,
        'client_city': proposal.client_city,
        'consumption_kwh': str(proposal.consumption_kwh),
        'current_tariff': str(proposal.current_tariff),
        'discount_percentage': str(proposal.discount_percentage),
        'annual_saving': str(round(proposal.annual_saving(), 2)),
        'partner': proposal.partner,
        'generator_name': proposal.generator_name,
        'status': proposal.status,
        'created_at': proposal.created_at.isoformat(),
    }


@api_login_required
@require_http_methods(["POST"])
def proposal_save_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = ProposalForm(payload)
    if not form.is_valid():
        return form_errors_response(form)

    try:
        proposal = save_proposal(request.user, form)
    except InsufficientCreditsError as e:
        return json_error('Insufficient balance to generate a proposal.', status=402, code=e.code)
    except Exception as e:
        logger.error(f"Unexpected error saving proposal: {str(e)}", exc_info=True)
        return server_error_response()

    return json_success(
        proposal_to_dict(proposal),
        message='Proposal saved successfully!',
        status=201,
        proposal_number=proposal.number,
    )


@api_login_required
@require_http_methods(["GET"])
def proposal_list_view(request):
    proposals = Proposal.objects.select_related('created_by')
    if request.user.is_admin():
        if request.user.company_id:
            proposals = proposals.filter(company=request.user.company)
    else:
        proposals = proposals.filter(created_by=request.user)

    return json_success([proposal_to_dict(proposal) for proposal in proposals[:200]])
