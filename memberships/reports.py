# memberships/reports.py
"""Monthly spreadsheet exports built with openpyxl."""
import calendar
import io
import logging
from datetime import date

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from .models import Membership, RenewalLog

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

MEMBERSHIP_HEADERS = [
    '#', 'Member', 'Email', 'Phone', 'Activity', 'Start date', 'End date',
    'Cost', 'Status', 'Payment status', 'Auto renewal', 'Attendances', 'Max attendances',
]
RENEWAL_HEADERS = [
    '#', 'Date', 'Action', 'Result', 'Member', 'Activity', 'Months',
    'Old end date', 'New end date', 'Old price', 'New price', 'Price source', 'Automatic', 'Error',
]


def parse_month(value):
    """Parse ``YYYY-MM`` into the first and last day of that month."""
    try:
        year, month = (int(part) for part in value.split('-'))
        first_day = date(year, month, 1)
    except (AttributeError, TypeError, ValueError):
        raise ValueError("Month must be in YYYY-MM format")
    last_day = first_day.replace(day=calendar.monthrange(year, month)[1])
    return first_day, last_day


def _new_sheet(title, headers):
    wb = Workbook()
    ws = wb.active
    ws.title = title

    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=12)

    ws.append(headers)
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
    return wb, ws


def _to_bytes(wb):
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_membership_report(gym, month):
    """Memberships whose date range overlaps ``month``, as xlsx bytes."""
    first_day, last_day = parse_month(month)
    memberships = (
        Membership.objects.filter(gym=gym, start_date__lte=last_day, end_date__gte=first_day)
        .select_related('member')
        .order_by('member_name', 'start_date')
    )

    wb, ws = _new_sheet(f"Memberships {month}", MEMBERSHIP_HEADERS)
    for idx, membership in enumerate(memberships, start=1):
        ws.append([
            idx,
            membership.member_name,
            membership.member.email or '',
            membership.member.phone or '',
            membership.activity_name,
            membership.start_date,
            membership.end_date,
            float(membership.cost),
            membership.get_status_display(),
            membership.get_payment_status_display(),
            'Yes' if membership.auto_renewal else 'No',
            membership.current_attendances,
            membership.max_attendances or 'Unlimited',
        ])

    logger.info(f"Membership report for gym {gym.pk} ({month}): {ws.max_row - 1} rows")
    return _to_bytes(wb)


def build_renewal_report(gym, month):
    """Renewal log entries recorded during ``month``, as xlsx bytes."""
    first_day, last_day = parse_month(month)
    logs = RenewalLog.objects.filter(
        gym=gym,
        created_at__date__gte=first_day,
        created_at__date__lte=last_day,
    ).order_by('created_at')

    wb, ws = _new_sheet(f"Renewals {month}", RENEWAL_HEADERS)
    for idx, log in enumerate(logs, start=1):
        ws.append([
            idx,
            timezone.localtime(log.created_at).replace(tzinfo=None),
            log.get_action_display(),
            'OK' if log.success else 'Failed',
            log.member_name,
            log.activity_name,
            log.months,
            log.old_end_date,
            log.new_end_date,
            float(log.old_price) if log.old_price is not None else None,
            float(log.new_price) if log.new_price is not None else None,
            log.get_price_source_display() if log.price_source else '',
            'Yes' if log.automatic else 'No',
            log.error,
        ])

    logger.info(f"Renewal report for gym {gym.pk} ({month}): {ws.max_row - 1} rows")
    return _to_bytes(wb)


REPORT_BUILDERS = {
    'memberships': build_membership_report,
    'renewals': build_renewal_report,
}
