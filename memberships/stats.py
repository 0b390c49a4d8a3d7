# memberships/stats.py
"""
Dashboard figures for memberships and renewals
"""

from django.conf import settings
from django.db.models import Count, Q, Sum
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal
import logging

from .models import Membership, RenewalLog

logger = logging.getLogger(__name__)


def get_renewal_stats(gym, today=None):
    """
    Counts shown on the renewal dashboard.

    Returns:
        dict: total, with_auto_renewal, expired, expiring_soon, renewed_this_month
    """
    today = today or timezone.localdate()
    expiring_horizon = today + timedelta(days=settings.EXPIRING_SOON_DAYS)
    start_of_month = today.replace(day=1)

    live = ~Q(status__in=[Membership.Status.CANCELLED, Membership.Status.RENEWED])
    stats = Membership.objects.filter(gym=gym).aggregate(
        total=Count('id'),
        with_auto_renewal=Count('id', filter=Q(auto_renewal=True) & live),
        expired=Count('id', filter=live & Q(end_date__lt=today)),
        expiring_soon=Count('id', filter=live & Q(end_date__gte=today, end_date__lte=expiring_horizon)),
    )
    stats['renewed_this_month'] = RenewalLog.objects.filter(
        gym=gym,
        action=RenewalLog.Action.RENEWAL,
        success=True,
        created_at__date__gte=start_of_month,
    ).count()
    return stats


def get_financial_metrics(gym, today=None):
    """Collection figures for memberships that started in the current month."""
    today = today or timezone.localdate()
    month_memberships = Membership.objects.filter(
        gym=gym,
        status=Membership.Status.ACTIVE,
        start_date__year=today.year,
        start_date__month=today.month,
    )
    totals = month_memberships.aggregate(
        total_to_collect=Sum('cost'),
        total_collected=Sum('cost', filter=Q(payment_status=Membership.PaymentStatus.PAID)),
        pending_payments=Count('id', filter=~Q(payment_status=Membership.PaymentStatus.PAID)),
    )
    total_to_collect = totals['total_to_collect'] or Decimal('0')
    total_collected = totals['total_collected'] or Decimal('0')

    if total_to_collect > 0:
        collection_percentage = round(float(total_collected / total_to_collect * 100), 2)
    else:
        collection_percentage = 100.0

    return {
        'total_to_collect': total_to_collect,
        'total_collected': total_collected,
        'pending_payments': totals['pending_payments'],
        'collection_percentage': collection_percentage,
    }


def get_renewal_history(gym, limit=10, action=None):
    logs = RenewalLog.objects.filter(gym=gym)
    if action:
        logs = logs.filter(action=action)
    return list(logs.order_by('-created_at')[:limit])
