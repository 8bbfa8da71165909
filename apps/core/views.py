import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required, company_required
from apps.core.responses import json_success, json_error
from apps.leads.models import Lead
from .models import Company
from .utils import get_user_company, set_selected_company

logger = logging.getLogger(__name__)


@api_login_required
@require_http_methods(["GET", "POST"])
def company_selector_view(request):
    """
    Company selector for Superuser

    GET lists the companies and the current selection, POST (?company_id=)
    switches the company the superuser is managing.
    """
    if not request.user.is_superuser:
        return json_error('Superuser access required.', status=403)

    if request.method == 'POST':
        company_id = request.GET.get('company_id') or request.POST.get('company_id')
        if not set_selected_company(request, company_id):
            return json_error('Company not found', status=404)

    selected_company = get_user_company(request)
    companies = Company.objects.all().order_by('name')

    return json_success({
        'selected_company_id': selected_company.id if selected_company else None,
        'companies': [
            {'id': company.id, 'name': company.name, 'is_active': company.is_active}
            for company in companies
        ],
    })


@api_login_required
@company_required
@require_http_methods(["GET"])
def dashboard_stats_view(request):
    """
    Main dashboard numbers
    - Superuser: selected company data
    - Everyone else: their company data
    """
    company = get_user_company(request)
    if not company:
        return json_error('Select a company first.', status=400)

    leads_qs = Lead.objects.filter(company=company)
    if not request.user.is_admin():
        leads_qs = leads_qs.filter(assigned_to=request.user)

    today = timezone.localdate()
    start_of_week = today - timedelta(days=today.weekday())

    # 1. Key Metrics
    total_leads = leads_qs.count()
    new_today = leads_qs.filter(created_at__date=today).count()
    new_this_week = leads_qs.filter(created_at__date__gte=start_of_week).count()

    # 2. Lead Distribution by Stage (one query)
    stage_count_map = {
        item['stage']: item['count']
        for item in leads_qs.values('stage').annotate(count=Count('id'))
    }
    leads_by_stage = [
        {
            'stage': stage,
            'name': label,
            'count': stage_count_map.get(stage, 0),
            'percentage': round(stage_count_map.get(stage, 0) / total_leads * 100, 1) if total_leads else 0,
        }
        for stage, label in Lead.STAGE_CHOICES
    ]

    completed = leads_qs.filter(stage=Lead.STAGE_COMPLETED)
    completed_kwh = completed.aggregate(total=Sum('kwh'))['total'] or Decimal('0')
    conversion_rate = round(completed.count() / total_leads * 100, 1) if total_leads else 0

    user = request.user
    return json_success({
        'total_leads': total_leads,
        'new_today': new_today,
        'new_this_week': new_this_week,
        'conversion_rate': conversion_rate,
        'completed_kwh': str(completed_kwh),
        'leads_by_stage': leads_by_stage,
        'balances': {
            'personal_balance': str(user.personal_balance),
            'mlm_balance': str(user.mlm_balance),
            'credits': user.credits,
        },
    })


@require_http_methods(["GET"])
def public_stats_view(request):
    """Headline numbers for the landing page (no authentication)."""
    completed = Lead.objects.filter(stage=Lead.STAGE_COMPLETED)
    totals = completed.aggregate(total_kwh=Sum('kwh'))

    return json_success({
        'total_kwh': str(totals['total_kwh'] or Decimal('0')),
        'pf_count': completed.filter(customer_type='pf').count(),
        'pj_count': completed.filter(customer_type='pj').count(),
    })
