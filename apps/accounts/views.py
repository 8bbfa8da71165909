import logging

from django.contrib.auth import authenticate, login, logout
from django.db import transaction
from django.db.models import ProtectedError
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.core.responses import parse_json, invalid_json_response, form_errors_response

from .decorators import api_login_required, admin_required, company_required
from .forms import LoginForm, RegisterForm, UserCreateForm, UserPermissionsForm
from .models import User

logger = logging.getLogger(__name__)


# HELPER FUNCTIONS

def user_to_dict(user, include_balances=False):
    data = {
        'id': user.id,
        'email': user.email,
        'name': user.get_full_name(),
        'phone': user.phone,
        'role': user.role,
        'company_id': user.company_id,
        'referral_code': user.referral_code,
        'referred_by_id': user.referred_by_id,
        'upline_id': user.upline_id,
        'plan': user.plan,
        'is_active': user.is_active,
        'permissions': {
            'can_view_lead_phone': user.can_view_lead_phone,
            'can_view_crm': user.can_view_crm,
            'can_view_career_plan': user.can_view_career_plan,
            'assignment_limit': user.assignment_limit,
        },
    }
    if include_balances:
        data['balances'] = {
            'personal_balance': str(user.personal_balance),
            'mlm_balance': str(user.mlm_balance),
            'credits': user.credits,
        }
    return data


# AUTHENTICATION VIEWS

@csrf_exempt
@require_http_methods(["POST"])
def register_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = RegisterForm(payload)
    if not form.is_valid():
        return form_errors_response(form)

    user = form.save()
    logger.info(f"New registration: {user.email}")

    return JsonResponse({
        'status': 'success',
        'message': f'User {user.email} created successfully. Complete your registration.',
        'data': {'user_id': user.id},
    }, status=201)


@never_cache
@csrf_exempt
@require_http_methods(["POST"])
def login_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = LoginForm(payload)
    if not form.is_valid():
        return form_errors_response(form)

    # Returns User object if valid, None if invalid (or inactive)
    user = authenticate(
        request,
        username=form.cleaned_data['email'],
        password=form.cleaned_data['password'],
    )
    if user is None:
        logger.warning(f"Failed login for {form.cleaned_data['email']}")
        return JsonResponse({'status': 'error', 'message': 'Invalid email or password'}, status=401)

    login(request, user)
    if form.cleaned_data.get('remember'):
        request.session.set_expiry(30 * 24 * 60 * 60)  # 30 days
    else:
        request.session.set_expiry(0)  # Until the browser closes

    return JsonResponse({
        'status': 'success',
        'message': f'Welcome back, {user.get_full_name()}!',
        'data': user_to_dict(user, include_balances=True),
    })


@require_http_methods(["POST"])
def logout_view(request):
    logout(request)
    return JsonResponse({'status': 'success', 'message': 'Logged out'})


@api_login_required
@require_http_methods(["GET"])
def me_view(request):
    return JsonResponse({
        'status': 'success',
        'data': user_to_dict(request.user, include_balances=True),
    })


@api_login_required
@require_http_methods(["GET"])
def team_view(request):
    """The user's whole downline, breadth-first."""
    team = request.user.get_downline()
    return JsonResponse({
        'status': 'success',
        'data': {
            'count': len(team),
            'members': [
                {
                    'id': member.id,
                    'name': member.get_full_name(),
                    'email': member.email,
                    'role': member.role,
                    'upline_id': member.upline_id,
                    'date_joined': member.date_joined.isoformat(),
                }
                for member in team
            ],
        },
    })


# ADMIN: USER MANAGEMENT

@admin_required
@company_required
@require_http_methods(["GET"])
def user_list_view(request):
    users = User.objects.filter(company=request.user.company).order_by('first_name', 'email')

    role = request.GET.get('role')
    if role:
        users = users.filter(role=role)

    return JsonResponse({
        'status': 'success',
        'data': [user_to_dict(user, include_balances=True) for user in users],
    })


@admin_required
@company_required
@require_http_methods(["POST"])
def user_create_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = UserCreateForm(payload)
    form.fields['upline'].queryset = User.objects.filter(company=request.user.company)
    if not form.is_valid():
        return form_errors_response(form)

    user = form.save(commit=False)
    user.company = request.user.company
    user.save()
    logger.info(f"User {user.email} created by {request.user.email}")

    return JsonResponse({
        'status': 'success',
        'message': f'User {user.email} created successfully',
        'data': user_to_dict(user),
    }, status=201)


@admin_required
@company_required
@require_http_methods(["POST"])
def user_update_view(request, pk):
    try:
        user = User.objects.get(pk=pk, company=request.user.company)
    except User.DoesNotExist:
        return JsonResponse({'status': 'error', 'message': 'User not found'}, status=404)

    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = UserPermissionsForm(payload, instance=user)
    form.fields['upline'].queryset = User.objects.filter(company=request.user.company)
    if not form.is_valid():
        return form_errors_response(form)

    form.save()
    logger.info(f"User {user.email} updated by {request.user.email}: {sorted(payload)}")

    return JsonResponse({
        'status': 'success',
        'message': 'User updated successfully',
        'data': user_to_dict(user),
    })


@admin_required
@company_required
@require_http_methods(["POST", "DELETE"])
def user_delete_view(request, pk):
    try:
        user = User.objects.get(pk=pk, company=request.user.company)
    except User.DoesNotExist:
        return JsonResponse({'status': 'error', 'message': 'User not found'}, status=404)

    if user == request.user:
        return JsonResponse({'status': 'error', 'message': 'You cannot delete your own account'}, status=400)

    email = user.email
    # Open leads are released by the pre_delete signal
    try:
        with transaction.atomic():
            user.delete()
    except ProtectedError:
        return JsonResponse({
            'status': 'error',
            'message': 'User has withdrawals or commissions on record; deactivate the account instead',
        }, status=400)

    logger.info(f"User {email} deleted by {request.user.email}")
    return JsonResponse({'status': 'success', 'message': f'User {email} deleted'})
