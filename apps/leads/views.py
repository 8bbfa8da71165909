import logging

import openpyxl
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods
from openpyxl.styles import Font, PatternFill

from apps.accounts.decorators import api_login_required, admin_required, company_required, same_company_required
from apps.accounts.models import User
from apps.core.models import UserEvent
from apps.core.responses import (
    parse_json, json_success, json_error, invalid_json_response,
    form_errors_response, server_error_response,
)
from apps.core.tracking import track_event
from apps.core.utils import mask_phone
from .forms import LeadForm, LeadImportForm, RecurrenceImportForm
from .importers import read_rows, import_leads, import_recurrence_status
from .models import Lead

logger = logging.getLogger(__name__)


def lead_to_dict(lead, viewer):
    can_see_phone = viewer.is_admin() or viewer.can_view_lead_phone
    return {
        'id': lead.id,
        'name': lead.name,
        'phone': lead.phone if can_see_phone else mask_phone(lead.phone),
        'email': lead.email,
        'document': lead.document,
        'customer_type': lead.customer_type,
        'kwh': str(lead.kwh),
        'value': str(lead.value),
        'value_after_discount': str(lead.value_after_discount),
        'discount_percentage': str(lead.discount_percentage),
        'stage': lead.stage,
        'stage_display': lead.get_stage_display(),
        'source': lead.source.name if lead.source_id else None,
        'assigned_to': {
            'id': lead.assigned_to.id,
            'name': lead.assigned_to.get_full_name(),
        } if lead.assigned_to_id else None,
        'seller_name': lead.seller_name,
        'needs_admin_approval': lead.needs_admin_approval,
        'correction_reason': lead.correction_reason,
        'signed_at': lead.signed_at.isoformat() if lead.signed_at else None,
        'completed_at': lead.completed_at.isoformat() if lead.completed_at else None,
        'last_contact': lead.last_contact.isoformat() if lead.last_contact else None,
        'created_at': lead.created_at.isoformat(),
    }


def visible_leads(user):
    """Admins see the whole company board; everyone else sees their own leads."""
    leads = Lead.objects.filter(company=user.company).select_related('source', 'assigned_to')
    if not user.is_admin():
        leads = leads.filter(assigned_to=user)
    return leads


@api_login_required
@company_required
@require_http_methods(["GET"])
def lead_list_view(request):
    leads = visible_leads(request.user)

    search_query = request.GET.get('search', '').strip()
    if search_query:
        leads = leads.filter(
            Q(name__icontains=search_query) |
            Q(phone__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(document__icontains=search_query)
        )

    stage = request.GET.get('stage')
    if stage:
        leads = leads.filter(stage=stage)

    assigned = request.GET.get('assigned_to')
    if assigned == 'none':
        leads = leads.filter(assigned_to__isnull=True)
    elif assigned:
        leads = leads.filter(assigned_to_id=assigned)

    paginator = Paginator(leads.order_by('-created_at'), 50)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    return json_success({
        'count': paginator.count,
        'page': page_obj.number,
        'num_pages': paginator.num_pages,
        'leads': [lead_to_dict(lead, request.user) for lead in page_obj],
    })


@api_login_required
@company_required
@require_http_methods(["POST"])
def lead_create_view(request):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    form = LeadForm(payload)
    if not form.is_valid():
        return form_errors_response(form)

    lead = form.save(commit=False)
    lead.company = request.user.company
    if not request.user.is_admin():
        # Sellers work the leads they bring in
        lead.assigned_to = request.user
        lead.stage = Lead.STAGE_CONTACT
    lead.save()

    track_event(UserEvent.LEAD_CREATED, request.user, {'lead_id': lead.id}, page=request.path)
    logger.info(f"Lead {lead.id} created by {request.user.email}")

    return json_success(lead_to_dict(lead, request.user), message='Lead created successfully', status=201)


@api_login_required
@same_company_required(Lead)
@require_http_methods(["GET"])
def lead_detail_view(request, pk):
    lead = Lead.objects.select_related('source', 'assigned_to').get(pk=pk)

    if not request.user.is_admin() and lead.assigned_to_id != request.user.id:
        return json_error('Access denied', status=403)

    track_event(UserEvent.LEAD_VIEWED, request.user, {'lead_id': lead.id}, page=request.path)

    data = lead_to_dict(lead, request.user)
    data['notes'] = [
        {
            'id': note.id,
            'content': note.content,
            'user': note.user.get_full_name() if note.user else None,
            'created_at': note.created_at.isoformat(),
        }
        for note in lead.get_notes()
    ]
    data['activities'] = [
        {
            'type': activity.activity_type,
            'description': activity.description,
            'user': activity.user.get_full_name() if activity.user else 'System',
            'created_at': activity.created_at.isoformat(),
        }
        for activity in lead.get_activities()[:50]
    ]
    return json_success(data)


@admin_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_assign_view(request, pk):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    try:
        seller = User.objects.get(pk=payload.get('user_id'), company=request.user.company, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        return json_error('Seller not found', status=404)

    with transaction.atomic():
        lead = Lead.objects.select_for_update().get(pk=pk)
        if not lead.can_be_assigned():
            return json_error('Closed leads cannot be reassigned', status=400)
        if not lead.assign_to(seller, assigned_by=request.user):
            return json_error(
                f'{seller.get_full_name()} already has {seller.assignment_limit} open leads',
                status=400,
            )

    logger.info(f"Lead {lead.id} assigned to {seller.email} by {request.user.email}")
    return json_success(lead_to_dict(lead, request.user), message=f'Lead assigned to {seller.get_full_name()}')


@api_login_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_change_stage_view(request, pk):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    lead = Lead.objects.get(pk=pk)
    if not request.user.is_admin() and lead.assigned_to_id != request.user.id:
        return json_error('Access denied', status=403)

    new_stage = payload.get('stage')
    if new_stage not in dict(Lead.STAGE_CHOICES):
        return json_error('Invalid stage', status=400)

    lead.change_stage(new_stage, user=request.user)
    return json_success(lead_to_dict(lead, request.user), message='Stage updated')


@api_login_required
@same_company_required(Lead)
@require_http_methods(["POST"])
def lead_add_note_view(request, pk):
    payload = parse_json(request)
    if payload is None:
        return invalid_json_response()

    lead = Lead.objects.get(pk=pk)
    if not request.user.is_admin() and lead.assigned_to_id != request.user.id:
        return json_error('Access denied', status=403)

    content = (payload.get('content') or '').strip()
    if not content:
        return json_error('Note content is required', status=400)

    note = lead.add_note(content, request.user)
    return json_success({'id': note.id, 'content': note.content}, message='Note added successfully', status=201)


@api_login_required
@company_required
@require_http_methods(["GET"])
def team_leads_view(request):
    """Leads of the user and of the user's whole downline."""
    member_ids = [request.user.id] + [member.id for member in request.user.get_downline()]
    leads = Lead.objects.filter(
        company=request.user.company,
        assigned_to_id__in=member_ids,
    ).select_related('source', 'assigned_to').order_by('-created_at')

    return json_success({
        'members': len(member_ids),
        'leads': [lead_to_dict(lead, request.user) for lead in leads],
    })


@admin_required
@company_required
@require_http_methods(["POST"])
def lead_import_view(request):
    form = LeadImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return form_errors_response(form)

    try:
        rows = read_rows(form.cleaned_data['file'])
    except (ValueError, UnicodeDecodeError) as e:
        return json_error(f'Error processing the file: {e}', status=400)

    try:
        results = import_leads(rows, request.user.company, imported_by=request.user)
    except Exception as e:
        logger.error(f"Lead import failed: {str(e)}", exc_info=True)
        return server_error_response()

    return json_success(
        {key: results[key] for key in ('imported', 'updated', 'failed', 'errors')},
        message=results['message'],
    )


@admin_required
@company_required
@require_http_methods(["POST"])
def recurrence_import_view(request):
    form = RecurrenceImportForm(request.POST, request.FILES)
    if not form.is_valid():
        return form_errors_response(form)

    try:
        rows = read_rows(form.cleaned_data['file'])
    except (ValueError, UnicodeDecodeError) as e:
        return json_error(f'Error processing the file: {e}', status=400)

    results = import_recurrence_status(rows, request.user.company)
    return json_success(
        {key: results[key] for key in ('updated', 'not_found', 'invalid')},
        message=results['message'],
    )


@admin_required
@company_required
@require_http_methods(["GET"])
def lead_export_view(request):
    leads = Lead.objects.filter(company=request.user.company).select_related('source', 'assigned_to')

    stage = request.GET.get('stage')
    if stage:
        leads = leads.filter(stage=stage)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Leads"

    headers = [
        'ID', 'Name', 'Phone', 'Email', 'Document', 'kWh', 'Value (R$)',
        'Billed (R$)', 'Discount (%)', 'Stage', 'Source', 'Assigned To',
        'Signed At', 'Completed At', 'Created Date',
    ]

    # Write headers with styling
    for col, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color="667eea", end_color="667eea", fill_type="solid")

    def fmt(dt):
        return timezone.localtime(dt).strftime('%d/%m/%Y %H:%M') if dt else ''

    for row, lead in enumerate(leads, start=2):
        ws.cell(row=row, column=1, value=lead.id)
        ws.cell(row=row, column=2, value=lead.name)
        ws.cell(row=row, column=3, value=lead.phone)
        ws.cell(row=row, column=4, value=lead.email or '')
        ws.cell(row=row, column=5, value=lead.document)
        ws.cell(row=row, column=6, value=float(lead.kwh))
        ws.cell(row=row, column=7, value=float(lead.value))
        ws.cell(row=row, column=8, value=float(lead.value_after_discount))
        ws.cell(row=row, column=9, value=float(lead.discount_percentage))
        ws.cell(row=row, column=10, value=lead.get_stage_display())
        ws.cell(row=row, column=11, value=lead.source.name if lead.source_id else '')
        ws.cell(row=row, column=12, value=lead.assigned_to.get_full_name() if lead.assigned_to_id else '')
        ws.cell(row=row, column=13, value=fmt(lead.signed_at))
        ws.cell(row=row, column=14, value=fmt(lead.completed_at))
        ws.cell(row=row, column=15, value=fmt(lead.created_at))

    # Adjust column widths
    for column_cells in ws.columns:
        width = max(len(str(cell.value or '')) for cell in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(width + 2, 40)

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    filename = f"leads_{timezone.localdate().strftime('%Y%m%d')}.xlsx"
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)
    return response
