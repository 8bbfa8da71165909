"""
Invoice services: contact unlock and invoice registration.
"""
import logging

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.billing.ledger import debit_credits
from apps.billing.models import CreditTransaction
from apps.core.models import UserEvent
from apps.core.tasks import send_telegram_notification
from apps.core.tracking import track_event
from .models import InvoiceClient
from .pricing import calculate_lead_cost, get_lead_tier_name

logger = logging.getLogger(__name__)


def unlock_contact(user, invoice_client_id):
    """
    Reveal an invoice client's contact to `user`

    Admins, superadmins and lawyers unlock for free; everyone else pays
    the tier cost of the client's first consumer unit. Unlocking twice
    never charges twice.

    Returns:
        dict: {'already_unlocked', 'cost', 'charged', 'tier'}

    Raises:
        InvoiceClient.DoesNotExist
        InsufficientCreditsError: not enough credits (nothing is changed)
    """
    with transaction.atomic():
        client = InvoiceClient.objects.select_for_update().get(pk=invoice_client_id)
        cost = calculate_lead_cost(client.first_unit_kwh())
        tier = get_lead_tier_name(cost)

        if client.unlocked_by.filter(pk=user.pk).exists():
            return {'already_unlocked': True, 'cost': cost, 'charged': 0, 'tier': tier}

        charged = 0
        if not user.unlocks_for_free():
            debit_credits(
                user,
                cost,
                CreditTransaction.REASON_UNLOCK_CONTACT,
                description=f'Unlock contact: {client.name}',
                reference=client.pk,
            )
            charged = cost

        client.unlocked_by.add(user)
        if not client.is_unlocked:
            client.is_unlocked = True
            client.save(update_fields=['is_unlocked', 'updated_at'])

    track_event(
        UserEvent.LEAD_UNLOCKED,
        user,
        {'invoice_client_id': client.pk, 'client_name': client.name, 'cost': charged},
    )
    logger.info(f"Invoice client {client.pk} unlocked by {user.email} for {charged} credits")
    return {'already_unlocked': False, 'cost': cost, 'charged': charged, 'tier': tier}


def build_invoice_notification(client, user):
    """Telegram text for a registered/updated invoice."""
    first_unit = client.units.order_by('order', 'id').first()
    consumption = first_unit.consumption_kwh if first_unit else 0
    city = (first_unit.city if first_unit else '') or 'N/A'
    role_label = 'Assistant' if user.role == User.ROLE_LAWYER else 'User'

    return (
        "📄 <b>Invoice registered/updated</b>\n\n"
        f"{role_label}: <b>{user.get_full_name()}</b>\n"
        f"🏢 <b>Client:</b> {client.name}\n"
        f"⚡ <b>Consumption:</b> {consumption} kWh\n"
        f"📍 <b>City:</b> {city}\n"
        f"🔢 <b>Units:</b> {client.units.count()}"
    )


def register_invoice(user, client_form, unit_forms):
    """
    Save an invoice client and replace its consumer units

    Args:
        client_form: valid InvoiceClientForm (new or bound to an instance)
        unit_forms: valid ConsumerUnitForm list, in bill order

    Returns:
        InvoiceClient
    """
    with transaction.atomic():
        client = client_form.save(commit=False)
        is_new = client.pk is None
        if is_new:
            client.company = user.company
            client.created_by = user
        client.last_updated_by = user
        client.last_updated_at = timezone.now()
        client.save()

        client.units.all().delete()
        for order, unit_form in enumerate(unit_forms):
            unit = unit_form.save(commit=False)
            unit.invoice_client = client
            unit.order = order
            unit.save()

        message = build_invoice_notification(client, user)
        transaction.on_commit(lambda: send_telegram_notification.delay(message))

    track_event(
        UserEvent.INVOICE_PROCESSED,
        user,
        {'invoice_client_id': client.pk, 'units': len(unit_forms), 'new': is_new},
    )
    logger.info(f"Invoice client {client.pk} {'created' if is_new else 'updated'} by {user.email}")
    return client
