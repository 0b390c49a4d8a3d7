# memberships/automation.py
"""
Monthly auto-renewal batch.

Runs server-side from Celery beat. Each gym's AutoRenewalConfig decides
whether and when the batch runs; a MonthlyRenewalRun row, unique per gym
and month, is claimed before any work starts so the batch runs at most
once a month no matter how many workers or manual triggers fire.
"""
import logging

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from gyms.models import AutoRenewalConfig
from .models import MonthlyRenewalRun, RenewalLog
from .services import get_expired_auto_renewals, process_auto_renewals

logger = logging.getLogger(__name__)


def is_within_run_window(config, today):
    window = settings.AUTO_RENEWAL_WINDOW_DAYS
    return config.day_of_month <= today.day < config.day_of_month + window


def has_run_this_month(gym, today):
    return MonthlyRenewalRun.objects.filter(gym=gym, year=today.year, month=today.month).exists()


def should_run_monthly(config, today=None):
    today = today or timezone.localdate()
    return (
        config.enabled
        and is_within_run_window(config, today)
        and not has_run_this_month(config.gym, today)
    )


def _queue_expiry_reminders(memberships, today):
    from .tasks import send_membership_expiry_reminder

    if not getattr(settings, 'WHATSAPP_ENABLED', False):
        return 0
    queued = 0
    for membership in memberships:
        try:
            send_membership_expiry_reminder.delay(
                membership_id=str(membership.pk),
                days_until_expiry=membership.days_until_expiration(today),
            )
            queued += 1
        except Exception as task_error:
            logger.error(f"Failed to queue expiry reminder for {membership.pk}: {task_error}")
    return queued


def run_monthly_renewals(gym, today=None, force=False):
    """
    Run the monthly batch for one gym if it is due.

    ``force`` ignores the enabled flag and the day window but never the
    once-a-month marker. Returns a summary dict with ``ran`` telling
    whether the batch ran and ``reason`` when it did not.
    """
    today = today or timezone.localdate()
    config = AutoRenewalConfig.for_gym(gym)

    if not force:
        if not config.enabled:
            return {'ran': False, 'reason': 'disabled'}
        if not is_within_run_window(config, today):
            return {'ran': False, 'reason': 'outside_window'}

    run, created = MonthlyRenewalRun.objects.get_or_create(
        gym=gym, year=today.year, month=today.month,
        defaults={'notify_only': config.notify_only},
    )
    if not created:
        logger.info(f"Monthly renewal for gym {gym.pk} already ran for {today:%Y-%m}")
        return {'ran': False, 'reason': 'already_ran', 'run_id': run.pk}

    logger.info(f"Running monthly renewal for gym {gym.pk} ({'notify only' if config.notify_only else 'renew'})")

    if config.notify_only:
        pending = get_expired_auto_renewals(gym, today)
        notified = _queue_expiry_reminders(pending, today)
        summary = {
            'total': len(pending),
            'renewed': 0,
            'failed': 0,
            'notified': notified,
            'errors': [],
            'success': True,
        }
    else:
        summary = process_auto_renewals(gym, today)
        summary['notified'] = 0

    run.complete(renewed=summary['renewed'], failed=summary['failed'], notified=summary['notified'])

    try:
        RenewalLog.objects.create(
            gym=gym,
            action=RenewalLog.Action.MONTHLY_PROCESS,
            success=summary['success'],
            automatic=True,
            details={
                'year': today.year,
                'month': today.month,
                'notify_only': config.notify_only,
                'total': summary['total'],
                'renewed': summary['renewed'],
                'failed': summary['failed'],
                'notified': summary['notified'],
                'errors': summary['errors'],
            },
        )
    except DatabaseError as e:
        logger.error(f"Could not record monthly renewal for gym {gym.pk}: {e}")

    config.last_run = today
    config.save(update_fields=['last_run', 'updated_at'])

    summary.update({'ran': True, 'run_id': run.pk, 'notify_only': config.notify_only})
    return summary
