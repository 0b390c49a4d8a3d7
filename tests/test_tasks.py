from datetime import date, timedelta

import pytest
from django.utils import timezone

from memberships import tasks
from memberships.models import Membership
from memberships.services import renew_membership


@pytest.fixture
def renewed(gym, membership):
    result = renew_membership(gym, membership.pk, today=date(2024, 2, 15))
    return Membership.objects.get(pk=result['new_membership_id'])


def test_renewal_message_mentions_dates_and_amount(renewed):
    message = tasks.create_renewal_message(renewed, renewed.cost)

    assert 'Hi Ana' in message
    assert '15/02/2024' in message
    assert '15/03/2024' in message
    assert '$1,000.00' in message


@pytest.mark.parametrize('days, fragment', [(3, 'expires in 3 days'), (1, 'expires in 1 day '), (-5, 'expired on')])
def test_expiry_reminder_message(membership, days, fragment):
    assert fragment in tasks.create_expiry_reminder_message(membership, days)


def test_renewed_message_sent_without_pdf(renewed, monkeypatch):
    sent = []

    def fail_pdf(membership):
        raise RuntimeError("no pdf backend")

    monkeypatch.setattr(tasks, 'generate_renewal_receipt_pdf', fail_pdf)
    monkeypatch.setattr(tasks, 'send_whatsapp_message', lambda to, body, media_url=None: sent.append((to, media_url)) or 'SM123')

    result = tasks.send_membership_renewed_message(membership_id=str(renewed.pk))

    assert result['status'] == 'success'
    assert result['message_sid'] == 'SM123'
    assert sent == [('1155550001', None)]


def test_renewed_message_skips_member_without_phone(renewed, member):
    member.phone = ''
    member.save()

    result = tasks.send_membership_renewed_message(membership_id=str(renewed.pk))

    assert result['status'] == 'no_phone'


def test_expiry_reminder_for_missing_membership(db):
    result = tasks.send_membership_expiry_reminder(
        membership_id='00000000-0000-0000-0000-000000000000', days_until_expiry=2
    )

    assert result['status'] == 'error'


def test_expire_lapsed_task(gym, make_membership):
    today = timezone.localdate()
    lapsed = make_membership(start_date=today - timedelta(days=40), end_date=today - timedelta(days=1))

    assert tasks.expire_lapsed_memberships_task() == "Marked 1 memberships as expired"
    lapsed.refresh_from_db()
    assert lapsed.status == Membership.Status.EXPIRED
