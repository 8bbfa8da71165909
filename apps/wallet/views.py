import logging

from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required, admin_required
from apps.core.responses import parse_json, json_success, json_error, invalid_json_response, server_error_response
from .models import WithdrawalRequest
from .services import (
    InsufficientBalanceError, WithdrawalError,
    process_old_withdrawals, request_withdrawal, update_withdrawal_status, withdrawal_history,
)

logger = logging.getLogger(__name__)


@api_login_required
@require_http_methods(["POST"])
def withdrawal_request_view(request):

    logger.info(f"Withdrawal request from user: {request.user.email}")

    try:
        payload = parse_json(request)
        if payload is None:
            return invalid_json_response()

        try:
            withdrawal = request_withdrawal(
                request.user,
                payload.get('amount'),
                payload.get('pix_key_type'),
                payload.get('pix_key'),
                payload.get('withdrawal_type'),
            )
        except InsufficientBalanceError as e:
            return json_error(str(e), status=400, code=e.code, available=str(e.available))
        except WithdrawalError as e:
            return json_error(str(e), status=400)

        return json_success(
            withdrawal.to_dict(),
            message='Your withdrawal request was submitted and is awaiting approval.',
            status=201,
        )

    except Exception as e:
        logger.error(f"Unexpected error requesting withdrawal: {str(e)}", exc_info=True)
        return server_error_response()


@api_login_required
@require_http_methods(["GET"])
def withdrawal_history_view(request):
    return json_success({
        'personal_balance': str(request.user.personal_balance),
        'mlm_balance': str(request.user.mlm_balance),
        'withdrawals': [w.to_dict() for w in withdrawal_history(request.user)],
    })


@admin_required
@require_http_methods(["GET"])
def admin_withdrawal_list_view(request):
    withdrawals = WithdrawalRequest.objects.all()

    status = request.GET.get('status')
    if status:
        withdrawals = withdrawals.filter(status=status)

    return json_success([w.to_dict() for w in withdrawals[:500]])


@admin_required
@require_http_methods(["POST"])
def admin_withdrawal_status_view(request, pk):

    try:
        payload = parse_json(request)
        if payload is None:
            return invalid_json_response()

        try:
            withdrawal = update_withdrawal_status(pk, payload.get('status'), payload.get('admin_notes'))
        except WithdrawalRequest.DoesNotExist:
            return json_error('Withdrawal request not found', status=404)
        except WithdrawalError as e:
            return json_error(str(e), status=400)

        logger.info(f"Withdrawal #{pk} set to {withdrawal.status} by {request.user.email}")
        return json_success(withdrawal.to_dict(), message='Withdrawal status updated.')

    except Exception as e:
        logger.error(f"Unexpected error updating withdrawal {pk}: {str(e)}", exc_info=True)
        return server_error_response()


@admin_required
@require_http_methods(["POST"])
def admin_process_old_view(request):
    count = process_old_withdrawals()
    if count == 0:
        message = 'No old pending withdrawal requests found.'
    else:
        message = f"{count} withdrawal request(s) marked as completed."
    return json_success(message=message, count=count)
