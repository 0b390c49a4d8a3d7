# memberships/services.py
"""
Expiration scanning and renewal of member memberships.

Public functions here never raise for expected failures: the scanner
degrades to an empty list and the renewal functions return result dicts
with ``success`` set, so views and Celery tasks can report outcomes
without wrapping every call.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from activities.models import MembershipPlan
from members.models import Member
from .exceptions import MembershipNotFound, RenewalError
from .models import Membership, PendingPayment, RenewalLog, add_months, approximate_debt

logger = logging.getLogger(__name__)


# =============================================================================
# EXPIRATION SCANNER
# =============================================================================

def scan_expired_memberships(gym, today=None):
    """
    Every membership of the gym whose end date is before today and which
    has not been cancelled, oldest first.

    Returns a list of dicts with ``membership``, ``days_expired`` and the
    approximate ``total_debt`` (cost times started 30-day periods). A read
    error is logged and reported as an empty list.
    """
    today = today or timezone.localdate()
    try:
        memberships = list(
            Membership.objects.filter(gym=gym, end_date__lt=today)
            .exclude(status=Membership.Status.CANCELLED)
            .select_related('member', 'activity')
            .order_by('end_date', 'created_at')
        )
    except DatabaseError as e:
        logger.error(f"Expiration scan failed for gym {gym.pk}: {e}", exc_info=True)
        return []

    expired = []
    for membership in memberships:
        days_expired = max(0, (today - membership.end_date).days)
        expired.append({
            'membership': membership,
            'days_expired': days_expired,
            'total_debt': approximate_debt(membership.cost, days_expired),
        })

    logger.info(f"Found {len(expired)} expired memberships for gym {gym.pk} as of {today}")
    return expired


def get_expired_auto_renewals(gym, today=None):
    """Auto-renewal memberships past their end date that have not been superseded yet."""
    today = today or timezone.localdate()
    return list(
        Membership.objects.filter(
            gym=gym,
            auto_renewal=True,
            status__in=[Membership.Status.ACTIVE, Membership.Status.EXPIRED],
            end_date__lt=today,
        ).select_related('member', 'activity').order_by('end_date', 'created_at')
    )


def get_upcoming_auto_renewals(gym, days_ahead=None, today=None):
    today = today or timezone.localdate()
    if days_ahead is None:
        days_ahead = settings.EXPIRING_SOON_DAYS
    return list(
        Membership.objects.filter(
            gym=gym,
            auto_renewal=True,
            status=Membership.Status.ACTIVE,
            end_date__gte=today,
            end_date__lte=today + timedelta(days=days_ahead),
        ).select_related('member', 'activity').order_by('end_date', 'created_at')
    )


def expire_lapsed_memberships(gym, today=None):
    """Mark active memberships past their end date as expired, leaving auto-renewal ones to the renewal batch."""
    today = today or timezone.localdate()
    updated = Membership.objects.filter(
        gym=gym,
        status=Membership.Status.ACTIVE,
        auto_renewal=False,
        end_date__lt=today,
    ).update(status=Membership.Status.EXPIRED, updated_at=timezone.now())
    if updated:
        logger.info(f"Marked {updated} memberships as expired for gym {gym.pk}")
    return updated


# =============================================================================
# PRICE RESOLUTION
# =============================================================================

def _activity_tier_price(membership):
    return membership.activity.current_price()


def _plan_price(membership):
    plans = MembershipPlan.objects.filter(activity_id=membership.activity_id, is_active=True)
    plan = None
    if membership.plan_id:
        plan = plans.filter(id=membership.plan_id).first()
    if plan is None:
        plan = plans.order_by('created_at').first()
    return plan.cost if plan else None


PRICE_LOOKUPS = (
    (Membership.PriceSource.ACTIVITY, _activity_tier_price),
    (Membership.PriceSource.PLAN, _plan_price),
)


def resolve_current_price(membership):
    """
    Current price for renewing ``membership`` and where it came from.

    The activity's first tier wins, then the activity's membership plan,
    then the price stored on the membership itself. A lookup that errors
    or finds no positive price falls through to the next one.
    """
    for source, lookup in PRICE_LOOKUPS:
        try:
            price = lookup(membership)
        except DatabaseError as e:
            logger.warning(f"Price lookup '{source}' failed for membership {membership.pk}: {e}")
            continue
        if price is not None and price > 0:
            return price, source

    logger.info(f"No current price found for membership {membership.pk}, keeping {membership.cost}")
    return membership.cost, Membership.PriceSource.PREVIOUS


# =============================================================================
# RENEWAL PROCESSOR
# =============================================================================

def _create_pending_payment(membership, amount):
    """Record the renewal charge; a failure here never undoes the renewal itself."""
    try:
        with transaction.atomic():
            payment = PendingPayment.objects.create(
                gym_id=membership.gym_id,
                membership=membership,
                member_id=membership.member_id,
                amount=amount,
                due_date=membership.start_date,
            )
            Member.objects.filter(pk=membership.member_id).update(total_debt=F('total_debt') + amount)
        return payment
    except DatabaseError as e:
        logger.warning(f"Pending payment for membership {membership.pk} was not created: {e}", exc_info=True)
        return None


def _queue_renewal_notice(membership_id):
    from .tasks import send_membership_renewed_message

    if not getattr(settings, 'WHATSAPP_ENABLED', False):
        return
    try:
        send_membership_renewed_message.delay(membership_id=str(membership_id))
    except Exception as task_error:
        # Don't fail the renewal if the notification can't be queued
        logger.error(f"Failed to queue renewal notice for {membership_id}: {task_error}")


def _log_failed_renewal(gym, membership_id, months, error, automatic):
    try:
        membership = Membership.objects.filter(gym=gym, pk=membership_id).first()
    except (DatabaseError, ValidationError):
        membership = None
    try:
        RenewalLog.objects.create(
            gym=gym,
            action=RenewalLog.Action.RENEWAL,
            success=False,
            membership=membership,
            member_name=membership.member_name if membership else '',
            activity_name=membership.activity_name if membership else '',
            months=months if isinstance(months, int) and months > 0 else None,
            automatic=automatic,
            error=str(error),
        )
    except DatabaseError as log_error:
        logger.error(f"Could not record failed renewal of {membership_id}: {log_error}")


def renew_membership(gym, membership_id, months=1, today=None, automatic=False):
    """
    Replace a membership with a new one starting today and lasting ``months``
    calendar months at the current price.

    The new membership is always ``pending`` payment. Creating it and marking
    the old one ``renewed`` happen in one transaction with the old row
    locked, so a membership is never renewed twice. The pending-payment
    record is best effort.

    Returns ``{'success': True, 'new_membership_id': ..., ...}`` or
    ``{'success': False, 'error': ...}``.
    """
    today = today or timezone.localdate()
    try:
        if not isinstance(months, int) or months < 1:
            raise RenewalError("Renewal duration must be at least one month")

        with transaction.atomic():
            try:
                current = (
                    Membership.objects.select_for_update()
                    .select_related('member', 'activity')
                    .get(gym=gym, pk=membership_id)
                )
            except (Membership.DoesNotExist, ValidationError):
                raise MembershipNotFound(f"Membership {membership_id} not found")

            current.ensure_renewable()
            price, price_source = resolve_current_price(current)
            end_date = add_months(today, months)

            new_membership = Membership.objects.create(
                gym=gym,
                member=current.member,
                member_name=current.member.full_name,
                activity=current.activity,
                activity_name=current.activity.name,
                plan=current.plan,
                cost=price,
                price_source=price_source,
                start_date=today,
                end_date=end_date,
                status=Membership.Status.ACTIVE,
                payment_status=Membership.PaymentStatus.PENDING,
                auto_renewal=current.auto_renewal,
                max_attendances=current.max_attendances,
                current_attendances=0,
                previous_membership=current,
                renewed_automatically=automatic,
                renewal_date=timezone.now(),
            )
            current.mark_renewed(new_membership)

            payment = _create_pending_payment(new_membership, price * months)

            RenewalLog.objects.create(
                gym=gym,
                action=RenewalLog.Action.RENEWAL,
                success=True,
                membership=current,
                new_membership=new_membership,
                member_name=new_membership.member_name,
                activity_name=new_membership.activity_name,
                old_end_date=current.end_date,
                new_end_date=end_date,
                old_price=current.cost,
                new_price=price,
                price_source=price_source,
                months=months,
                automatic=automatic,
                details={'pending_payment_id': str(payment.pk) if payment else None},
            )
            transaction.on_commit(lambda: _queue_renewal_notice(new_membership.pk))

    except RenewalError as e:
        logger.warning(f"Renewal of membership {membership_id} refused: {e}")
        _log_failed_renewal(gym, membership_id, months, e, automatic)
        return {'success': False, 'membership_id': str(membership_id), 'error': str(e)}
    except Exception as e:
        logger.error(f"Renewal of membership {membership_id} failed: {e}", exc_info=True)
        _log_failed_renewal(gym, membership_id, months, e, automatic)
        return {'success': False, 'membership_id': str(membership_id), 'error': str(e)}

    logger.info(
        f"Renewed membership {current.pk} -> {new_membership.pk} for {months} month(s) "
        f"at {price} (source: {price_source})"
    )
    return {
        'success': True,
        'membership_id': str(current.pk),
        'new_membership_id': str(new_membership.pk),
        'start_date': new_membership.start_date,
        'end_date': new_membership.end_date,
        'cost': price,
        'price_source': price_source,
        'pending_payment_id': str(payment.pk) if payment else None,
    }


def renew_selected(gym, membership_ids, months=1, today=None, automatic=False):
    """
    Renew each membership in turn, carrying on past failures.

    Nothing is rolled back when one item fails; the result reports what
    happened to every id.
    """
    today = today or timezone.localdate()
    result = {
        'total': len(membership_ids),
        'renewed': 0,
        'failed': 0,
        'new_membership_ids': [],
        'errors': [],
    }

    for membership_id in membership_ids:
        outcome = renew_membership(gym, membership_id, months=months, today=today, automatic=automatic)
        if outcome['success']:
            result['renewed'] += 1
            result['new_membership_ids'].append(outcome['new_membership_id'])
        else:
            result['failed'] += 1
            result['errors'].append({'membership_id': str(membership_id), 'error': outcome['error']})

    result['success'] = result['failed'] == 0
    try:
        RenewalLog.objects.create(
            gym=gym,
            action=RenewalLog.Action.BATCH_RENEWAL,
            success=result['success'],
            months=months if isinstance(months, int) and months > 0 else None,
            automatic=automatic,
            details={
                'total': result['total'],
                'renewed': result['renewed'],
                'failed': result['failed'],
                'errors': result['errors'],
            },
        )
    except DatabaseError as e:
        logger.error(f"Could not record batch renewal for gym {gym.pk}: {e}")

    logger.info(
        f"Batch renewal for gym {gym.pk}: {result['renewed']} renewed, "
        f"{result['failed']} failed of {result['total']}"
    )
    return result


def process_auto_renewals(gym, today=None):
    """Renew every expired auto-renewal membership of the gym for one month."""
    today = today or timezone.localdate()
    candidates = get_expired_auto_renewals(gym, today)
    if not candidates:
        logger.info(f"No auto-renewal memberships to process for gym {gym.pk}")
        return {'total': 0, 'renewed': 0, 'failed': 0, 'new_membership_ids': [], 'errors': [], 'success': True}
    return renew_selected(gym, [m.pk for m in candidates], months=1, today=today, automatic=True)


# =============================================================================
# PAYMENTS
# =============================================================================

@transaction.atomic
def mark_payment_paid(payment):
    """Settle a pending payment; the row is locked so the member's debt drops only once."""
    payment = (
        PendingPayment.objects.select_for_update()
        .select_related('membership')
        .get(pk=payment.pk)
    )
    if payment.status == PendingPayment.Status.PAID:
        raise ValueError("Payment is already marked as paid")

    payment.status = PendingPayment.Status.PAID
    payment.paid_at = timezone.now()
    payment.save(update_fields=['status', 'paid_at'])

    Member.objects.filter(pk=payment.member_id).update(total_debt=F('total_debt') - payment.amount)

    membership = payment.membership
    if not membership.pending_payments.filter(status=PendingPayment.Status.PENDING).exists():
        membership.payment_status = Membership.PaymentStatus.PAID
    else:
        membership.payment_status = Membership.PaymentStatus.PARTIAL
    membership.save(update_fields=['payment_status', 'updated_at'])
    return payment
