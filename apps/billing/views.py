import logging
from decimal import InvalidOperation

from django.conf import settings
from django.utils.crypto import constant_time_compare
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required, admin_required
from apps.accounts.models import User
from apps.core.responses import parse_json, json_success, json_error, invalid_json_response, server_error_response
from .asaas import AsaasAPIError
from .ledger import credit_history
from .models import Commission
from .pricing import CHECKOUT_CATALOG
from .services import (
    CONFIRMED_PAYMENT_EVENTS, InvalidCatalogItemError, UnknownPaymentUserError,
    create_checkout, process_payment_event,
)

logger = logging.getLogger(__name__)


def webhook_token_is_valid(request):
    secret = settings.ASAAS_WEBHOOK_SECRET
    token = request.headers.get('asaas-access-token', '')
    return bool(secret) and constant_time_compare(token, secret)


@csrf_exempt
@require_http_methods(["POST"])
def asaas_webhook(request):

    try:
        # Step 1: Validate shared secret
        if not webhook_token_is_valid(request):
            logger.warning("Asaas webhook rejected: invalid access token")
            return json_error('Unauthorized', status=401)

        # Step 2: Parse JSON payload
        payload = parse_json(request)
        if payload is None:
            logger.error("Invalid JSON payload on Asaas webhook")
            return invalid_json_response()

        if not isinstance(payload.get('payment') or {}, dict):
            logger.error("Asaas webhook payment is not an object")
            return json_error('Invalid payload', status=400)

        event_type = payload.get('event')
        payment = payload.get('payment') or {}
        logger.info(f"Asaas webhook received: {event_type} {payment.get('id')}")

        # Step 3: Only confirmed payments move credits
        if event_type not in CONFIRMED_PAYMENT_EVENTS:
            return json_success(received=True, processed=False)

        # Step 4: Extract required fields
        if not payment.get('externalReference'):
            logger.error(f"Asaas payment {payment.get('id')} has no user reference")
            return json_error('No user reference', status=400)

        if not payment.get('id'):
            return json_error('No payment id', status=400)

        # Step 5: Credits + commission in one transaction
        try:
            result = process_payment_event(event_type, payment, payload)
        except UnknownPaymentUserError as e:
            logger.error(f"Asaas webhook: {e}")
            return json_error('User not found', status=404)
        except (InvalidOperation, ValueError):
            return json_error('Invalid payment value', status=400)

        # Step 6: Return success response
        return json_success(
            received=True,
            processed=not result['duplicate'],
            duplicate=result['duplicate'],
            credits_added=result['credits'],
            commission=str(result['commission']),
        )

    except Exception as e:
        logger.error(f"Unexpected error in Asaas webhook: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@require_http_methods(["GET"])
def catalog_view(request):
    return json_success([
        {'item_id': item_id, 'name': item['name'], 'price': str(item['price']), 'kind': item['kind']}
        for item_id, item in CHECKOUT_CATALOG.items()
    ])


@api_login_required
@require_http_methods(["POST"])
def checkout_view(request):

    logger.info(f"Checkout request from user: {request.user.email}")

    try:
        payload = parse_json(request)
        if payload is None:
            return invalid_json_response()

        item_id = payload.get('item_id')
        if not item_id:
            return json_error('item_id is required', status=400)

        try:
            checkout = create_checkout(
                request.user,
                item_id,
                coupon_code=payload.get('coupon_code'),
                cpf_cnpj=payload.get('cpf_cnpj'),
            )
        except InvalidCatalogItemError as e:
            return json_error(str(e), status=400)
        except AsaasAPIError as e:
            logger.error(f"Checkout failed for {request.user.email}: {e}")
            return json_error(f'Payment gateway error: {e}', status=502, code=e.code)

        return json_success(checkout, payment_url=checkout['payment_url'])

    except Exception as e:
        logger.error(f"Unexpected error in checkout: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@require_http_methods(["GET"])
def credit_history_view(request):
    entries = credit_history(request.user)
    return json_success({
        'credits': request.user.credits,
        'transactions': [
            {
                'id': entry.id,
                'delta': entry.delta,
                'balance_after': entry.balance_after,
                'reason': entry.reason,
                'description': entry.description,
                'reference': entry.reference,
                'created_at': entry.created_at.isoformat(),
            }
            for entry in entries
        ],
    })


@api_login_required
@require_http_methods(["GET"])
def commission_list_view(request):
    """Commissions the user earned from referrals (admins may pass ?all=1)."""
    commissions = Commission.objects.select_related('affiliate', 'from_user')
    if not (request.user.is_admin() and request.GET.get('all')):
        commissions = commissions.filter(affiliate=request.user)

    return json_success([
        {
            'id': commission.id,
            'affiliate': commission.affiliate.email,
            'from_user': commission.from_user.email if commission.from_user else None,
            'amount': str(commission.amount),
            'base_amount': str(commission.base_amount),
            'status': commission.status,
            'created_at': commission.created_at.isoformat(),
        }
        for commission in commissions[:200]
    ])


@admin_required
@require_http_methods(["GET"])
def top_affiliates_view(request):
    """Affiliates ranked by multi-level balance (superusers see every company)."""
    affiliates = User.objects.filter(mlm_balance__gt=0).order_by('-mlm_balance', 'id')
    if not request.user.is_superuser:
        affiliates = affiliates.filter(company=request.user.company)

    return json_success([
        {
            'id': affiliate.id,
            'name': affiliate.get_full_name(),
            'email': affiliate.email,
            'referral_code': affiliate.referral_code,
            'mlm_balance': str(affiliate.mlm_balance),
        }
        for affiliate in affiliates[:100]
    ])
