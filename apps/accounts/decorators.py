# Decorators in this file:
# 1. api_login_required - User must be authenticated (401 JSON otherwise)
# 2. admin_required - Only admins can access
# 3. role_required - Only the listed roles can access
# 4. company_required - User must belong to a company
# 5. same_company_required - Accessed object must belong to the user's company
#
# Every endpoint of this project answers JSON, so the decorators answer
# JSON too, in the same {'status': 'error', 'message': ...} envelope.
# ==============================================================================

from functools import wraps

from django.http import JsonResponse
from django.utils.translation import gettext as _


def _error(message, status):
    return JsonResponse({'status': 'error', 'message': message}, status=status)


# AUTHENTICATION

def api_login_required(view_func):
    """
    Decorator: User must be logged in

    Unlike django.contrib.auth.decorators.login_required this never
    redirects to a login page; API clients get a 401 instead.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error(_('Authentication required.'), 401)
        return view_func(request, *args, **kwargs)

    return wrapper


# ROLE-BASED DECORATORS

def admin_required(view_func):
    """
    Decorator: Only admins can access this view

    Checks:
    1. User is authenticated
    2. User role is 'admin'/'superadmin' OR is superuser
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error(_('Authentication required.'), 401)

        if request.user.is_admin():
            return view_func(request, *args, **kwargs)

        return _error(_('Admin access required.'), 403)

    return wrapper


def role_required(*allowed_roles):
    """
    Decorator: Only specific roles can access

    Usage:
        @role_required('seller', 'prospector')
        def my_view(request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error(_('Authentication required.'), 401)

            if request.user.role in allowed_roles or request.user.is_superuser:
                return view_func(request, *args, **kwargs)

            return _error(_('You do not have permission to perform this action.'), 403)

        return wrapper

    return decorator


# COMPANY-BASED DECORATORS

def company_required(view_func):
    """
    Decorator: User must belong to a company

    Multi-tenancy requires company context; superusers are let through
    and pick a company with the company selector.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error(_('Authentication required.'), 401)

        if request.user.company_id or request.user.is_superuser:
            return view_func(request, *args, **kwargs)

        return _error(_('You must be assigned to a company to access this resource.'), 403)

    return wrapper


def same_company_required(model_class, pk_param='pk'):
    """
    Decorator: Verify accessed object belongs to user's company

    Args:
        model_class: Model class to verify (e.g., Lead, InvoiceClient)
        pk_param: URL parameter name for primary key (default: 'pk')

    Objects of another company answer 404 (not 403) so their existence
    is not revealed.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error(_('Authentication required.'), 401)

            if not request.user.company_id:
                return _error(_('You must be assigned to a company to access this resource.'), 403)

            pk = kwargs.get(pk_param)
            if not pk:
                return view_func(request, *args, **kwargs)

            exists = model_class.objects.filter(pk=pk, company_id=request.user.company_id).exists()
            if not exists:
                return _error(f"{model_class.__name__} not found", 404)

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
