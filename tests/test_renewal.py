from datetime import date
from decimal import Decimal

import pytest
from django.db import IntegrityError

from members.models import Member
from memberships.models import Membership, PendingPayment, RenewalLog, add_months
from memberships.services import (
    mark_payment_paid,
    process_auto_renewals,
    renew_membership,
    renew_selected,
    resolve_current_price,
)

TODAY = date(2024, 2, 15)


def test_renew_creates_pending_membership_for_one_month(gym, membership):
    result = renew_membership(gym, membership.pk, months=1, today=TODAY)

    assert result['success'] is True
    new = Membership.objects.get(pk=result['new_membership_id'])
    assert new.start_date == date(2024, 2, 15)
    assert new.end_date == date(2024, 3, 15)
    assert new.status == Membership.Status.ACTIVE
    assert new.payment_status == Membership.PaymentStatus.PENDING
    assert new.current_attendances == 0


def test_renew_links_lineage_both_ways(gym, membership):
    result = renew_membership(gym, membership.pk, today=TODAY)

    membership.refresh_from_db()
    new = Membership.objects.get(pk=result['new_membership_id'])
    assert membership.status == Membership.Status.RENEWED
    assert membership.renewed_to_id == new.pk
    assert new.previous_membership_id == membership.pk
    assert new.renewal_date is not None


def test_renew_uses_first_activity_tier_price(gym, membership, priced_activity, plan):
    result = renew_membership(gym, membership.pk, today=TODAY)

    assert result['cost'] == Decimal("1200.00")
    assert result['price_source'] == Membership.PriceSource.ACTIVITY


def test_renew_falls_back_to_plan_price(gym, membership, plan):
    result = renew_membership(gym, membership.pk, today=TODAY)

    assert result['cost'] == Decimal("1100.00")
    assert result['price_source'] == Membership.PriceSource.PLAN


def test_renew_keeps_previous_price_without_catalog(gym, membership):
    result = renew_membership(gym, membership.pk, today=TODAY)

    assert result['cost'] == Decimal("1000.00")
    assert result['price_source'] == Membership.PriceSource.PREVIOUS


def test_inactive_plan_is_not_a_price_source(gym, membership, plan):
    plan.is_active = False
    plan.save()

    assert resolve_current_price(membership) == (Decimal("1000.00"), Membership.PriceSource.PREVIOUS)


def test_renew_carries_over_member_settings(gym, make_membership):
    old = make_membership(auto_renewal=True, max_attendances=12, current_attendances=9)

    result = renew_membership(gym, old.pk, today=TODAY)

    new = Membership.objects.get(pk=result['new_membership_id'])
    assert new.auto_renewal is True
    assert new.max_attendances == 12
    assert new.member_id == old.member_id
    assert new.activity_id == old.activity_id


def test_renew_several_months_creates_one_payment_for_the_total(gym, member, membership, priced_activity):
    result = renew_membership(gym, membership.pk, months=3, today=TODAY)

    new = Membership.objects.get(pk=result['new_membership_id'])
    assert new.end_date == date(2024, 5, 15)
    assert new.cost == Decimal("1200.00")

    payment = PendingPayment.objects.get(pk=result['pending_payment_id'])
    assert payment.amount == Decimal("3600.00")
    assert payment.status == PendingPayment.Status.PENDING
    assert payment.due_date == TODAY
    assert payment.member_id == member.pk

    member.refresh_from_db()
    assert member.total_debt == Decimal("3600.00")


def test_month_end_is_clamped():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 3, 31), 1) == date(2024, 4, 30)


def test_renew_on_month_end(gym, membership):
    result = renew_membership(gym, membership.pk, today=date(2024, 1, 31))

    assert result['end_date'] == date(2024, 2, 29)


def test_membership_cannot_be_renewed_twice(gym, membership):
    first = renew_membership(gym, membership.pk, today=TODAY)
    second = renew_membership(gym, membership.pk, today=TODAY)

    assert first['success'] is True
    assert second['success'] is False
    assert 'already been renewed' in second['error']
    assert Membership.objects.filter(previous_membership=membership).count() == 1


def test_cancelled_membership_is_not_renewed(gym, make_membership):
    cancelled = make_membership(status=Membership.Status.CANCELLED)

    result = renew_membership(gym, cancelled.pk, today=TODAY)

    assert result['success'] is False
    assert Membership.objects.count() == 1


def test_unknown_membership_returns_error(gym):
    result = renew_membership(gym, '00000000-0000-0000-0000-000000000000', today=TODAY)

    assert result['success'] is False
    assert 'not found' in result['error']


def test_membership_of_another_gym_is_not_found(other_gym, membership):
    result = renew_membership(other_gym, membership.pk, today=TODAY)

    assert result['success'] is False
    membership.refresh_from_db()
    assert membership.status == Membership.Status.ACTIVE


@pytest.mark.parametrize('months', [0, -1])
def test_invalid_duration_is_refused(gym, membership, months):
    result = renew_membership(gym, membership.pk, months=months, today=TODAY)

    assert result['success'] is False
    assert Membership.objects.count() == 1


def test_renewal_is_logged(gym, membership, priced_activity):
    result = renew_membership(gym, membership.pk, months=2, today=TODAY)

    log = RenewalLog.objects.get(action=RenewalLog.Action.RENEWAL)
    assert log.success is True
    assert log.membership_id == membership.pk
    assert str(log.new_membership_id) == result['new_membership_id']
    assert log.old_price == Decimal("1000.00")
    assert log.new_price == Decimal("1200.00")
    assert log.price_source == Membership.PriceSource.ACTIVITY
    assert log.months == 2


def test_failed_renewal_is_logged(gym, membership):
    renew_membership(gym, membership.pk, today=TODAY)
    renew_membership(gym, membership.pk, today=TODAY)

    failed = RenewalLog.objects.get(action=RenewalLog.Action.RENEWAL, success=False)
    assert 'already been renewed' in failed.error


def test_renewal_survives_pending_payment_failure(gym, member, membership, monkeypatch):
    def broken_create(**kwargs):
        raise IntegrityError("pending payment insert failed")

    monkeypatch.setattr(PendingPayment.objects, 'create', broken_create)

    result = renew_membership(gym, membership.pk, today=TODAY)

    assert result['success'] is True
    assert result['pending_payment_id'] is None
    membership.refresh_from_db()
    assert membership.status == Membership.Status.RENEWED
    new = Membership.objects.get(pk=result['new_membership_id'])
    assert new.previous_membership_id == membership.pk
    assert PendingPayment.objects.count() == 0
    member.refresh_from_db()
    assert member.total_debt == Decimal("0.00")


@pytest.mark.parametrize('prior_status', [
    Membership.PaymentStatus.PAID,
    Membership.PaymentStatus.PARTIAL,
    Membership.PaymentStatus.PENDING,
])
def test_renewal_is_pending_whatever_was_paid_before(gym, make_membership, prior_status):
    old = make_membership(payment_status=prior_status)

    result = renew_membership(gym, old.pk, today=TODAY)

    new = Membership.objects.get(pk=result['new_membership_id'])
    assert new.payment_status == Membership.PaymentStatus.PENDING
    old.refresh_from_db()
    assert old.payment_status == prior_status


def test_renew_selected_continues_past_failures(gym, make_membership):
    first = make_membership()
    cancelled = make_membership(status=Membership.Status.CANCELLED)
    third = make_membership()

    result = renew_selected(gym, [first.pk, cancelled.pk, third.pk], months=1, today=TODAY)

    assert result['total'] == 3
    assert result['renewed'] == 2
    assert result['failed'] == 1
    assert result['success'] is False
    assert result['errors'][0]['membership_id'] == str(cancelled.pk)
    assert len(result['new_membership_ids']) == 2
    assert RenewalLog.objects.filter(action=RenewalLog.Action.BATCH_RENEWAL).count() == 1


def test_process_auto_renewals_only_touches_auto_memberships(gym, make_membership):
    auto = make_membership(auto_renewal=True)
    manual = make_membership(auto_renewal=False)

    result = process_auto_renewals(gym, today=TODAY)

    assert result['renewed'] == 1
    auto.refresh_from_db()
    manual.refresh_from_db()
    assert auto.status == Membership.Status.RENEWED
    assert manual.status == Membership.Status.ACTIVE
    new = Membership.objects.get(previous_membership=auto)
    assert new.renewed_automatically is True
    assert new.end_date == date(2024, 3, 15)


def test_process_auto_renewals_with_nothing_to_do(gym):
    result = process_auto_renewals(gym, today=TODAY)

    assert result == {'total': 0, 'renewed': 0, 'failed': 0, 'new_membership_ids': [], 'errors': [], 'success': True}


def test_mark_payment_paid_settles_debt(gym, member, membership):
    result = renew_membership(gym, membership.pk, today=TODAY)
    payment = PendingPayment.objects.get(pk=result['pending_payment_id'])

    payment = mark_payment_paid(payment)

    member.refresh_from_db()
    new = Membership.objects.get(pk=result['new_membership_id'])
    assert payment.status == PendingPayment.Status.PAID
    assert payment.paid_at is not None
    assert member.total_debt == Decimal("0.00")
    assert new.payment_status == Membership.PaymentStatus.PAID


def test_mark_payment_paid_twice_is_refused(gym, membership):
    result = renew_membership(gym, membership.pk, today=TODAY)
    payment = PendingPayment.objects.get(pk=result['pending_payment_id'])
    mark_payment_paid(payment)

    with pytest.raises(ValueError):
        mark_payment_paid(payment)
    assert Member.objects.get(pk=payment.member_id).total_debt == Decimal("0.00")


def test_stale_payment_instance_cannot_be_paid_twice(gym, member, membership):
    result = renew_membership(gym, membership.pk, today=TODAY)
    first_copy = PendingPayment.objects.get(pk=result['pending_payment_id'])
    second_copy = PendingPayment.objects.get(pk=result['pending_payment_id'])

    mark_payment_paid(first_copy)

    assert second_copy.status == PendingPayment.Status.PENDING
    with pytest.raises(ValueError):
        mark_payment_paid(second_copy)
    member.refresh_from_db()
    assert member.total_debt == Decimal("0.00")
