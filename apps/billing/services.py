"""
Billing services: payment confirmation and checkout.

process_payment_event() applies one confirmed gateway payment:

    1. Lock the paying user
    2. Skip deliveries already recorded (same payment id and event type)
    3. Grant credits from the price table (SDR plan payments also switch plan)
    4. Pay the referral commission to the user's referrer

All of it happens inside a single transaction, so a failure at any step
leaves no credits, balances or records behind.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.accounts.models import User
from apps.core.utils import only_digits, to_cents, format_brl
from .asaas import AsaasAPIClient, payment_url_for
from .ledger import grant_credits
from .models import Commission, Coupon, CreditTransaction, PaymentEvent
from .pricing import CHECKOUT_CATALOG, KIND_SUBSCRIPTION, compute_commission, credits_for_payment, is_sdr_plan_payment

logger = logging.getLogger(__name__)

# Gateway events that mean the money is in
CONFIRMED_PAYMENT_EVENTS = ('PAYMENT_RECEIVED', 'PAYMENT_CONFIRMED')


class UnknownPaymentUserError(Exception):
    """The payment's externalReference does not match any user."""


class InvalidCatalogItemError(Exception):
    pass


# PAYMENT CONFIRMATION

def pay_referral_commission(user, value, payment_event=None):
    """
    Credit the referrer of `user` with a share of the payment

    Returns:
        Decimal: amount paid (0 when there is no referrer)
    """
    if not user.referred_by_id:
        return Decimal('0.00')

    amount = compute_commission(value)
    if amount <= 0:
        return Decimal('0.00')

    User.objects.filter(pk=user.referred_by_id).update(mlm_balance=F('mlm_balance') + amount)
    Commission.objects.create(
        affiliate_id=user.referred_by_id,
        from_user=user,
        amount=amount,
        base_amount=to_cents(value),
        status=Commission.STATUS_PAID,
        payment_event=payment_event,
    )
    logger.info(f"Commission of {amount} paid to user {user.referred_by_id} for payment by {user.email}")
    return amount


def process_payment_event(event_type, payment, payload=None):
    """
    Apply a confirmed payment to the credit ledger

    Args:
        event_type: gateway event name (PAYMENT_RECEIVED / PAYMENT_CONFIRMED)
        payment: the event's "payment" object
        payload: full delivery, stored for auditing

    Returns:
        dict: {'duplicate', 'credits', 'commission', 'user_id', 'status'}

    Raises:
        UnknownPaymentUserError: externalReference matches no user
    """
    payment_id = str(payment.get('id') or '')
    user_ref = payment.get('externalReference')
    value = to_cents(payment.get('value') or 0)
    description = payment.get('description') or ''

    try:
        return _apply_payment(event_type, payment_id, user_ref, value, description, payment, payload)
    except IntegrityError:
        # A concurrent delivery of the same event committed first
        if PaymentEvent.objects.filter(gateway_payment_id=payment_id, event_type=event_type).exists():
            logger.info(f"Duplicate delivery of {event_type} {payment_id} (concurrent)")
            return {'duplicate': True, 'credits': 0, 'commission': Decimal('0.00'),
                    'user_id': user_ref, 'status': PaymentEvent.STATUS_IGNORED}
        raise


def _apply_payment(event_type, payment_id, user_ref, value, description, payment, payload):
    with transaction.atomic():
        try:
            user = User.objects.select_for_update().get(pk=user_ref)
        except (User.DoesNotExist, ValueError, TypeError):
            raise UnknownPaymentUserError(f"User {user_ref} not found")

        if PaymentEvent.objects.filter(gateway_payment_id=payment_id, event_type=event_type).exists():
            logger.info(f"Duplicate delivery of {event_type} {payment_id}")
            return {'duplicate': True, 'credits': 0, 'commission': Decimal('0.00'),
                    'user_id': user.pk, 'status': PaymentEvent.STATUS_IGNORED}

        # RECEIVED and CONFIRMED can both arrive for one payment; credit it once
        already_credited = PaymentEvent.objects.filter(
            gateway_payment_id=payment_id,
            status=PaymentEvent.STATUS_PROCESSED,
        ).exists()

        event = PaymentEvent.objects.create(
            gateway_payment_id=payment_id,
            event_type=event_type,
            user=user,
            value=value,
            description=description[:255],
            status=PaymentEvent.STATUS_IGNORED if already_credited else PaymentEvent.STATUS_PROCESSED,
            payload=payload or {},
        )
        if already_credited:
            logger.info(f"Payment {payment_id} already credited; {event_type} recorded only")
            return {'duplicate': False, 'credits': 0, 'commission': Decimal('0.00'),
                    'user_id': user.pk, 'status': event.status}

        sdr_plan = is_sdr_plan_payment(description)
        credits = credits_for_payment(value, description)
        if credits:
            grant_credits(
                user,
                credits,
                CreditTransaction.REASON_PLAN if sdr_plan else CreditTransaction.REASON_PURCHASE,
                description=description,
                reference=payment_id,
            )
        if sdr_plan:
            User.objects.filter(pk=user.pk).update(
                plan=User.PLAN_SDR_PRO,
                subscription_id=payment.get('subscription') or '',
            )

        commission = pay_referral_commission(user, value, payment_event=event)

        event.credits_granted = credits
        event.commission_amount = commission
        event.save(update_fields=['credits_granted', 'commission_amount'])

    logger.info(f"Payment {payment_id} processed: {credits} credits to {user.email}, commission {commission}")
    return {'duplicate': False, 'credits': credits, 'commission': commission,
            'user_id': user.pk, 'status': PaymentEvent.STATUS_PROCESSED}


# CHECKOUT

def apply_coupon(price, coupon_code):
    """
    An unknown or inactive coupon, or a purchase below its minimum, is
    ignored and the full price is charged.

    Returns:
        tuple: (price, Coupon or None)
    """
    code = (coupon_code or '').strip().upper()
    coupon = Coupon.objects.filter(code=code, is_active=True).first()
    if coupon is None:
        logger.warning(f"Coupon {code!r} is unknown or inactive; charging full price")
        return price, None

    if price < coupon.min_purchase:
        logger.warning(f"Coupon {code} needs {format_brl(coupon.min_purchase)}; charging full price")
        return price, None

    return to_cents(coupon.apply(price)), coupon


def ensure_gateway_customer(user, client, cpf_cnpj=None):
    """Return the user's Asaas customer id, creating the customer on first checkout."""
    if user.asaas_customer_id:
        return user.asaas_customer_id

    document = only_digits(cpf_cnpj or user.document)
    if len(document) not in (11, 14):
        document = settings.ASAAS_FALLBACK_DOCUMENT

    customer_id = client.create_customer(
        name=user.get_full_name(),
        email=user.email,
        cpf_cnpj=document,
        external_reference=str(user.pk),
    )
    User.objects.filter(pk=user.pk).update(asaas_customer_id=customer_id)
    user.asaas_customer_id = customer_id
    return customer_id


def create_checkout(user, item_id, coupon_code=None, cpf_cnpj=None, client=None):
    """
    Create the gateway charge for a catalog item

    Coupons only apply to one-off packs; the SDR plan is billed as a
    monthly subscription.

    Returns:
        dict: {'payment_url', 'gateway_id', 'value', 'description'}

    Raises:
        InvalidCatalogItemError, AsaasAPIError
    """
    item = CHECKOUT_CATALOG.get(item_id)
    if item is None:
        raise InvalidCatalogItemError(f'Invalid item: {item_id}')

    price = item['price']
    description = item['name']
    is_subscription = item['kind'] == KIND_SUBSCRIPTION

    if coupon_code and not is_subscription:
        price, coupon = apply_coupon(price, coupon_code)
        if coupon:
            description = f"{description} | Coupon: {coupon.code}"

    client = client or AsaasAPIClient()
    customer_id = ensure_gateway_customer(user, client, cpf_cnpj)

    today = timezone.localdate()
    if is_subscription:
        data = client.create_subscription(
            customer_id, price, description, str(user.pk),
            next_due_date=today + timedelta(days=1),
            cycle='MONTHLY',
        )
    else:
        data = client.create_payment(
            customer_id, price, description, str(user.pk),
            due_date=today + timedelta(days=2),
        )

    logger.info(f"Checkout {item_id} for {user.email}: {data['id']} ({price})")
    return {
        'payment_url': payment_url_for(data),
        'gateway_id': data['id'],
        'value': str(price),
        'description': description,
    }
