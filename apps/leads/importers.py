"""
Spreadsheet imports for the CRM board.

Two imports are supported:

1. Leads (CSV or XLSX exported by the energy partner's back office).
   Rows are matched to existing leads by CPF/CNPJ and updated, or created
   unassigned when they carry a document or an installation code.
2. Recurrence status (CSV). Marks leads whose recurring installments have
   been paid.

Column headers are matched case-insensitively after trimming.
"""
import csv
import io
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

import openpyxl
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.utils import only_digits, to_cents
from .models import Lead, Activity

logger = logging.getLogger(__name__)

DATE_FORMATS = ['%d/%m/%Y %H:%M', '%d/%m/%Y']

# Status keywords found in partner spreadsheets, checked in this order
STATUS_KEYWORDS = [
    ('FINALIZADO', Lead.STAGE_COMPLETED),
    ('ASSINADO', Lead.STAGE_SIGNED),
    ('CANCELADO', Lead.STAGE_CANCELLED),
    ('PERDIDO', Lead.STAGE_LOST),
    ('CONFORMIDADE', Lead.STAGE_COMPLIANCE),
    ('CONTRATO', Lead.STAGE_CONTRACT),
    ('PROPOSTA', Lead.STAGE_PROPOSAL),
    ('FATURA', Lead.STAGE_INVOICE),
    ('CONTATO', Lead.STAGE_CONTACT),
    ('VALIDACAO', Lead.STAGE_COMPLIANCE),
]


def parse_csv_number(value):
    """
    Parse a number written in Brazilian or US notation

    Examples:
        'R$ 1.234,56' -> Decimal('1234.56')
        '1,234.56'    -> Decimal('1234.56')
        '850'         -> Decimal('850')
        '1.000'       -> Decimal('1000')
        ''            -> Decimal('0')
    """
    if value is None:
        return Decimal('0')
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))

    cleaned = re.sub(r'[^0-9,.]', '', str(value))
    last_comma = cleaned.rfind(',')
    last_dot = cleaned.rfind('.')

    if last_comma > last_dot:
        # "1.234,56": dots are thousands, comma is decimal
        cleaned = cleaned.replace('.', '').replace(',', '.')
    elif last_comma == -1 and all(len(group) == 3 for group in cleaned.split('.')[1:]):
        # "1.000" / "12.345.678": Brazilian thousands without decimals
        cleaned = cleaned.replace('.', '')
    elif last_dot > last_comma:
        # "1,234.56": commas are thousands
        cleaned = cleaned.replace(',', '')

    try:
        return Decimal(cleaned) if cleaned else Decimal('0')
    except InvalidOperation:
        return Decimal('0')


def parse_csv_date(value):
    """'25/07/2024 14:30' -> aware datetime, or None when empty/invalid."""
    if isinstance(value, datetime):
        return value if timezone.is_aware(value) else timezone.make_aware(value)
    if not value:
        return None

    text = str(value).strip()
    for date_format in DATE_FORMATS:
        try:
            return timezone.make_aware(datetime.strptime(text, date_format))
        except ValueError:
            continue
    return None


def map_status_to_stage(status):
    """Map a free-text partner status ('CONTRATO_ENVIADO') to a pipeline stage."""
    if not status:
        return None
    normalized = str(status).strip().upper().replace('_', ' ')
    for keyword, stage in STATUS_KEYWORDS:
        if keyword in normalized:
            return stage
    return None


def read_rows(uploaded_file):
    """
    Read an uploaded CSV or XLSX file into dicts keyed by lowercased header.

    Raises:
        ValueError: unsupported file type
    """
    file_name = uploaded_file.name.lower()

    if file_name.endswith('.csv'):
        file_data = io.TextIOWrapper(uploaded_file.file, encoding='utf-8-sig')
        reader = csv.DictReader(file_data)
        rows = []
        for row in reader:
            cleaned = {
                (key or '').strip().lower(): (val.strip() if isinstance(val, str) else val)
                for key, val in row.items()
            }
            if any(cleaned.values()):
                rows.append(cleaned)
        return rows

    if file_name.endswith('.xlsx'):
        workbook = openpyxl.load_workbook(uploaded_file, read_only=True, data_only=True)
        sheet = workbook.active
        values = sheet.iter_rows(values_only=True)
        header = [str(cell or '').strip().lower() for cell in next(values, [])]
        rows = []
        for raw in values:
            if not any(raw):
                continue
            rows.append({
                header[i]: (str(cell).strip() if isinstance(cell, str) else cell)
                for i, cell in enumerate(raw) if i < len(header)
            })
        workbook.close()
        return rows

    raise ValueError('Invalid file format. Please upload a .csv or .xlsx file.')


def _build_lead_fields(row):
    """Translate one spreadsheet row into Lead field values (blank values dropped)."""
    document = only_digits(row.get('documento'))
    signed_at = parse_csv_date(row.get('assinado em'))
    completed_at = parse_csv_date(row.get('finalizado em'))

    if completed_at:
        stage = Lead.STAGE_COMPLETED
    elif signed_at:
        stage = Lead.STAGE_SIGNED
    else:
        stage = map_status_to_stage(row.get('status')) or Lead.STAGE_CONTACT

    billed = parse_csv_number(row.get('valor (r$)') or row.get('valor'))
    kwh = parse_csv_number(row.get('consumo (kwh)'))
    original_value = kwh * settings.KWH_TO_REAIS_FACTOR

    discount = Decimal('0')
    if original_value > 0 and 0 < billed < original_value:
        discount = (1 - billed / original_value) * 100

    fields = {
        'name': (row.get('cliente') or '').strip(),
        'seller_name': row.get('vendedor') or '',
        'document': document if len(document) in (11, 14) else '',
        'customer_type': {11: 'pf', 14: 'pj'}.get(len(document), ''),
        'installation_code': str(row.get('instalação') or '').strip(),
        'utility': row.get('concessionária') or '',
        'plan': row.get('plano') or '',
        'kwh': to_cents(kwh),
        'value': to_cents(original_value),
        'value_after_discount': to_cents(billed),
        'discount_percentage': to_cents(discount),
        'stage': stage,
        'signed_at': signed_at,
        'completed_at': completed_at,
        'last_contact': parse_csv_date(row.get('atualizado em')) or timezone.now(),
    }
    # Blank cells must not wipe data already on the lead
    return {key: val for key, val in fields.items() if val not in (None, '', Decimal('0'))}


def import_leads(rows, company, imported_by=None):
    """
    Create or update leads from spreadsheet rows

    Returns:
        dict: {'imported': int, 'updated': int, 'failed': int, 'errors': [str], 'message': str}
    """
    results = {'imported': 0, 'updated': 0, 'failed': 0, 'errors': []}

    documents = {
        only_digits(row.get('documento'))
        for row in rows
        if len(only_digits(row.get('documento'))) in (11, 14)
    }
    existing = {
        lead.document: lead
        for lead in Lead.objects.filter(company=company, document__in=documents)
    }

    with transaction.atomic():
        for row_num, row in enumerate(rows, start=2):
            fields = _build_lead_fields(row)

            if not fields.get('name'):
                results['failed'] += 1
                results['errors'].append(f'Row {row_num}: column "cliente" is required')
                continue

            lead = existing.get(fields.get('document'))
            if lead:
                fields.pop('seller_name', None)
                for key, val in fields.items():
                    setattr(lead, key, val)
                lead.save()
                results['updated'] += 1
            elif fields.get('document') or fields.get('installation_code'):
                lead = Lead.objects.create(
                    company=company,
                    assigned_to=None,
                    needs_admin_approval=False,
                    commission_paid=False,
                    created_at=parse_csv_date(row.get('criado em')) or timezone.now(),
                    **fields,
                )
                Activity.objects.create(
                    lead=lead,
                    user=imported_by,
                    activity_type='imported',
                    description='Lead imported from spreadsheet',
                )
                if lead.document:
                    existing[lead.document] = lead
                results['imported'] += 1
            else:
                results['failed'] += 1
                results['errors'].append(f'Row {row_num}: missing CPF/CNPJ or installation code')

    results['message'] = (
        f"Import finished. {results['imported']} imported, "
        f"{results['updated']} updated, {results['failed']} failed."
    )
    logger.info(f"Lead import for {company}: {results['message']}")
    return results


def import_recurrence_status(rows, company):
    """
    Mark leads whose recurring installments were paid

    A row is paid when "parcelas pagas" > 0. Leads are found by document
    (11+ digits) or, failing that, by exact name.
    """
    updated = not_found = invalid = 0

    with transaction.atomic():
        for row in rows:
            client = (row.get('cliente') or '').strip()
            document = only_digits(row.get('documento'))

            if not client and not document:
                invalid += 1
                continue

            try:
                paid_installments = int(str(row.get('parcelas pagas') or '0').strip())
            except ValueError:
                paid_installments = 0
            if paid_installments <= 0:
                continue

            leads = Lead.objects.filter(company=company)
            if len(document) >= 11:
                lead = leads.filter(document=document).first()
            else:
                lead = leads.filter(name=client).first()

            if lead is None:
                not_found += 1
                continue

            lead.recurrence_paid = True
            lead.save(update_fields=['recurrence_paid', 'updated_at'])
            updated += 1

    message = f"Import finished. {updated} recurrence statuses updated to 'Paid'."
    if not_found:
        message += f" {not_found} leads were not found."
    if invalid:
        message += f" {invalid} rows were ignored due to invalid data."

    logger.info(f"Recurrence import for {company}: {message}")
    return {'updated': updated, 'not_found': not_found, 'invalid': invalid, 'message': message}
