from datetime import timedelta
from decimal import Decimal
import uuid

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from memberships.models import Membership, PendingPayment
from memberships.reports import XLSX_CONTENT_TYPE


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def lapsed(make_membership, today):
    return make_membership(start_date=today - timedelta(days=75), end_date=today - timedelta(days=45))


def test_requires_authentication(db):
    response = APIClient().get('/api/memberships/')

    assert response.status_code == 401


def test_user_without_gym_is_forbidden(superadmin):
    client = APIClient()
    client.force_authenticate(user=superadmin)

    response = client.get('/api/memberships/')

    assert response.status_code == 403


def test_list_is_scoped_to_gym(api_client, membership, other_gym):
    other_member = other_gym.members.create(first_name="Luis")
    other_activity = other_gym.activities.create(name="Yoga")
    Membership.objects.create(gym=other_gym, member=other_member, activity=other_activity, cost=10)

    response = api_client.get('/api/memberships/')

    assert response.status_code == 200
    assert [row['id'] for row in response.data] == [str(membership.pk)]


def test_assign_membership(api_client, member, priced_activity, today):
    response = api_client.post('/api/memberships/', {
        'member_id': member.pk,
        'activity_id': str(priced_activity.pk),
        'months': 2,
        'auto_renewal': True,
    }, format='json')

    assert response.status_code == 201
    assert response.data['cost'] == '1200.00'
    assert response.data['auto_renewal'] is True
    assert response.data['start_date'] == today.isoformat()
    assert response.data['member_name'] == 'Ana Gomez'


def test_assign_rejects_second_active_membership(api_client, member, activity, membership):
    response = api_client.post('/api/memberships/', {
        'member_id': member.pk,
        'activity_id': str(activity.pk),
    }, format='json')

    assert response.status_code == 400


def test_assign_rejects_member_of_other_gym(api_client, activity, other_gym):
    stranger = other_gym.members.create(first_name="Luis")

    response = api_client.post('/api/memberships/', {
        'member_id': stranger.pk,
        'activity_id': str(activity.pk),
    }, format='json')

    assert response.status_code == 400
    assert 'member_id' in response.data


def test_expired_lists_debt(api_client, lapsed):
    response = api_client.get('/api/memberships/expired/')

    assert response.status_code == 200
    assert response.data['count'] == 1
    row = response.data['results'][0]
    assert row['membership']['id'] == str(lapsed.pk)
    assert row['days_expired'] == 45
    assert row['total_debt'] == '2000.00'


def test_upcoming(api_client, make_membership, today):
    soon = make_membership(auto_renewal=True, start_date=today - timedelta(days=25), end_date=today + timedelta(days=3))

    response = api_client.get('/api/memberships/upcoming/', {'days': 7})

    assert response.status_code == 200
    assert [row['id'] for row in response.data] == [str(soon.pk)]


def test_upcoming_rejects_bad_days(api_client):
    assert api_client.get('/api/memberships/upcoming/', {'days': 'soon'}).status_code == 400


def test_renew_endpoint(api_client, lapsed, today):
    response = api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 1}, format='json')

    assert response.status_code == 201
    assert response.data['new_membership']['start_date'] == today.isoformat()
    assert response.data['new_membership']['payment_status'] == 'pending'
    assert response.data['price_source'] == 'previous'
    assert response.data['pending_payment_id'] is not None


def test_renew_endpoint_rejects_too_many_months(api_client, lapsed, settings):
    settings.MAX_RENEWAL_MONTHS = 12

    response = api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 13}, format='json')

    assert response.status_code == 400


def test_renew_endpoint_refuses_renewed_membership(api_client, lapsed):
    api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 1}, format='json')

    response = api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 1}, format='json')

    assert response.status_code == 400
    assert 'error' in response.data


def test_bulk_renew_reports_each_item(api_client, lapsed):
    missing = uuid.uuid4()

    response = api_client.post('/api/memberships/bulk_renew/', {
        'membership_ids': [str(lapsed.pk), str(missing)],
        'months': 1,
    }, format='json')

    assert response.status_code == 200
    assert response.data['renewed'] == 1
    assert response.data['failed'] == 1
    assert response.data['errors'][0]['membership_id'] == str(missing)


def test_cancel(api_client, membership):
    response = api_client.patch(f'/api/memberships/{membership.pk}/cancel/')

    assert response.status_code == 200
    assert response.data['status'] == 'cancelled'

    again = api_client.patch(f'/api/memberships/{membership.pk}/cancel/')
    assert again.status_code == 400


def test_stats_and_financial_metrics(api_client, lapsed, make_membership, today):
    make_membership(
        auto_renewal=True, start_date=today.replace(day=1), end_date=today + timedelta(days=3),
        payment_status=Membership.PaymentStatus.PAID, cost=Decimal("800.00"),
    )

    stats = api_client.get('/api/memberships/stats/').data
    assert stats['total'] == 2
    assert stats['with_auto_renewal'] == 1
    assert stats['expired'] == 1
    assert stats['expiring_soon'] == 1

    metrics = api_client.get('/api/memberships/financial_metrics/').data
    assert metrics['total_collected'] == Decimal("800.00")
    assert metrics['pending_payments'] == 0
    assert metrics['collection_percentage'] == 100.0


def test_renewal_history(api_client, lapsed):
    api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 1}, format='json')

    response = api_client.get('/api/memberships/renewal_history/', {'action': 'renewal'})

    assert response.status_code == 200
    assert len(response.data) == 1
    assert response.data[0]['success'] is True


def test_export_returns_spreadsheet(api_client, membership):
    response = api_client.get('/api/memberships/export/', {'report': 'memberships', 'month': '2023-12'})

    assert response.status_code == 200
    assert response['Content-Type'] == XLSX_CONTENT_TYPE
    assert 'memberships_2023-12.xlsx' in response['Content-Disposition']


def test_export_rejects_bad_month(api_client):
    response = api_client.get('/api/memberships/export/', {'report': 'renewals', 'month': '12-2023'})

    assert response.status_code == 400


def test_automation_config_roundtrip(api_client):
    response = api_client.get('/api/memberships/automation/')
    assert response.status_code == 200
    assert response.data['day_of_month'] == 1

    response = api_client.patch('/api/memberships/automation/', {'day_of_month': 5, 'notify_only': True}, format='json')
    assert response.status_code == 200
    assert response.data['day_of_month'] == 5
    assert response.data['notify_only'] is True

    response = api_client.patch('/api/memberships/automation/', {'day_of_month': 29}, format='json')
    assert response.status_code == 400


def test_run_automation_only_once(api_client, make_membership, today):
    make_membership(auto_renewal=True, start_date=today - timedelta(days=40), end_date=today - timedelta(days=10))

    first = api_client.post('/api/memberships/run_automation/')
    second = api_client.post('/api/memberships/run_automation/')

    assert first.status_code == 200
    assert first.data['renewed'] == 1
    assert second.status_code == 409


def test_pending_payment_mark_paid(api_client, lapsed, member):
    renewal = api_client.post(f'/api/memberships/{lapsed.pk}/renew/', {'months': 1}, format='json')
    payment_id = renewal.data['pending_payment_id']

    listing = api_client.get('/api/pending-payments/', {'status': 'pending'})
    assert [row['id'] for row in listing.data] == [payment_id]

    response = api_client.post(f'/api/pending-payments/{payment_id}/mark_paid/')
    assert response.status_code == 200
    assert response.data['status'] == PendingPayment.Status.PAID

    again = api_client.post(f'/api/pending-payments/{payment_id}/mark_paid/')
    assert again.status_code == 400
