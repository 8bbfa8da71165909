import logging

from django.conf import settings
from django.db import transaction

from apps.billing.ledger import debit_credits
from apps.billing.models import CreditTransaction
from apps.core.models import SequenceCounter
from apps.core.tasks import send_telegram_notification
from apps.core.utils import format_brl
from .models import Proposal

logger = logging.getLogger(__name__)

PROPOSAL_SEQUENCE = 'proposal'


def build_proposal_notification(proposal):
    return (
        f"🚀 <b>New proposal generated! (#{proposal.number})</b>\n\n"
        f"👤 <b>Promoter:</b> {proposal.generator_name or 'User'}\n"
        f"🏢 <b>Client:</b> {proposal.client_name}\n"
        f"⚡ <b>Consumption:</b> {proposal.consumption_kwh} kWh\n"
        f"💲 <b>Tariff:</b> {format_brl(proposal.current_tariff)}\n"
        f"💰 <b>Est. saving:</b> {format_brl(proposal.annual_saving())}/year\n"
        f"🏷️ <b>Partner:</b> {proposal.partner or 'N/A'}\n"
        f"📍 <b>Location:</b> {proposal.client_city or 'N/A'}"
    )


def save_proposal(user, form):
    """
    Number, charge and store a proposal

    Non-admins pay PROPOSAL_CREDIT_COST credits. The number, the charge
    and the proposal commit together: a failed charge burns no number.

    Raises:
        InsufficientCreditsError
    """
    with transaction.atomic():
        number = SequenceCounter.next_value(PROPOSAL_SEQUENCE)

        if not user.is_admin():
            debit_credits(
                user,
                settings.PROPOSAL_CREDIT_COST,
                CreditTransaction.REASON_PROPOSAL,
                description=f'Proposal #{number}: {form.cleaned_data["client_name"]}',
                reference=number,
            )

        proposal = form.save(commit=False)
        proposal.number = number
        proposal.created_by = user
        proposal.company = user.company
        if not proposal.generator_name:
            proposal.generator_name = user.get_full_name()
        proposal.status = Proposal.STATUS_GENERATED
        proposal.save()

        message = build_proposal_notification(proposal)
        transaction.on_commit(lambda: send_telegram_notification.delay(message))

    logger.info(f"Proposal #{number} saved by {user.email}")
    return proposal
