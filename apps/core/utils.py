"""
Helper utilities shared by every app:
- company selection for superusers
- digit/phone/currency formatting
"""
import re
from decimal import Decimal, ROUND_HALF_UP

from apps.core.models import Company


CENTS = Decimal('0.01')


def get_user_company(request):
    """
    Get the company for the current user:
    - Superuser: from session (selected company)
    - Regular users: from user.company

    Returns:
        Company object or None
    """
    if not request.user.is_authenticated:
        return None

    # Superuser can select any company
    if request.user.is_superuser:
        company_id = request.session.get('selected_company_id')
        if company_id:
            try:
                return Company.objects.get(pk=company_id)
            except Company.DoesNotExist:
                # Company deleted - clear session
                request.session.pop('selected_company_id', None)
        return request.user.company

    return request.user.company


def set_selected_company(request, company_id):
    """
    Set the selected company in session (Superuser only)

    Returns:
        True if successful, False otherwise
    """
    if not request.user.is_superuser:
        return False

    try:
        company = Company.objects.get(pk=company_id)
    except (Company.DoesNotExist, ValueError):
        return False
    request.session['selected_company_id'] = company.id
    return True


def only_digits(value):
    """'123.456.789-00' -> '12345678900'"""
    if value is None:
        return ''
    return re.sub(r'\D', '', str(value))


def to_cents(value):
    """Round a Decimal-compatible value half-up to two places."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_brl(value):
    """
    Format a number as Brazilian Real

    Example:
        format_brl(Decimal('1234.5')) -> 'R$ 1.234,50'
    """
    amount = to_cents(value)
    sign = '-' if amount < 0 else ''
    integer, fraction = f"{abs(amount):,.2f}".split('.')
    return f"{sign}R$ {integer.replace(',', '.')},{fraction}"


def mask_phone(phone):
    """Hide everything but the last four digits of a phone number."""
    digits = only_digits(phone)
    if not digits:
        return ''
    if len(digits) <= 4:
        return '*' * len(digits)
    return '*' * (len(digits) - 4) + digits[-4:]
