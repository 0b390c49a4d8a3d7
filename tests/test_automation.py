from datetime import date

import pytest

from gyms.models import AutoRenewalConfig
from memberships import tasks
from memberships.automation import (
    is_within_run_window,
    run_monthly_renewals,
    should_run_monthly,
)
from memberships.models import Membership, MonthlyRenewalRun, RenewalLog


@pytest.fixture
def config(gym):
    return AutoRenewalConfig.for_gym(gym)


def test_config_is_created_with_defaults(config):
    assert config.enabled is True
    assert config.day_of_month == 1
    assert config.notify_only is False
    assert config.last_run is None


@pytest.mark.parametrize('day, expected', [(1, True), (3, True), (4, False), (15, False)])
def test_run_window_starts_on_configured_day(config, settings, day, expected):
    settings.AUTO_RENEWAL_WINDOW_DAYS = 3

    assert is_within_run_window(config, date(2024, 2, day)) is expected


def test_run_window_before_configured_day(config):
    config.day_of_month = 10

    assert is_within_run_window(config, date(2024, 2, 9)) is False
    assert is_within_run_window(config, date(2024, 2, 10)) is True


def test_monthly_run_renews_expired_auto_memberships(gym, config, make_membership):
    auto = make_membership(auto_renewal=True)
    make_membership(auto_renewal=False)

    result = run_monthly_renewals(gym, today=date(2024, 2, 1))

    assert result['ran'] is True
    assert result['renewed'] == 1
    assert result['failed'] == 0
    auto.refresh_from_db()
    assert auto.status == Membership.Status.RENEWED

    run = MonthlyRenewalRun.objects.get(gym=gym, year=2024, month=2)
    assert run.renewed_count == 1
    assert run.completed_at is not None

    config.refresh_from_db()
    assert config.last_run == date(2024, 2, 1)
    assert RenewalLog.objects.filter(action=RenewalLog.Action.MONTHLY_PROCESS).count() == 1


def test_monthly_run_happens_once_per_month(gym, config, make_membership):
    make_membership(auto_renewal=True)

    first = run_monthly_renewals(gym, today=date(2024, 2, 1))
    second = run_monthly_renewals(gym, today=date(2024, 2, 2))

    assert first['ran'] is True
    assert second == {'ran': False, 'reason': 'already_ran', 'run_id': first['run_id']}
    assert Membership.objects.filter(renewed_automatically=True).count() == 1
    assert should_run_monthly(config, today=date(2024, 2, 2)) is False


def test_monthly_run_again_next_month(gym, config, make_membership):
    make_membership(auto_renewal=True)
    run_monthly_renewals(gym, today=date(2024, 2, 1))

    result = run_monthly_renewals(gym, today=date(2024, 3, 1))

    assert result['ran'] is True
    assert MonthlyRenewalRun.objects.filter(gym=gym).count() == 2


def test_monthly_run_outside_window(gym, config, make_membership):
    make_membership(auto_renewal=True)

    result = run_monthly_renewals(gym, today=date(2024, 2, 15))

    assert result == {'ran': False, 'reason': 'outside_window'}
    assert not MonthlyRenewalRun.objects.exists()


def test_monthly_run_disabled(gym, config):
    config.enabled = False
    config.save()

    assert run_monthly_renewals(gym, today=date(2024, 2, 1)) == {'ran': False, 'reason': 'disabled'}
    assert should_run_monthly(config, today=date(2024, 2, 1)) is False


def test_forced_run_ignores_window_and_enabled_flag(gym, config, make_membership):
    config.enabled = False
    config.save()
    make_membership(auto_renewal=True)

    result = run_monthly_renewals(gym, today=date(2024, 2, 15), force=True)

    assert result['ran'] is True
    assert result['renewed'] == 1


def test_forced_run_still_respects_monthly_marker(gym, config):
    run_monthly_renewals(gym, today=date(2024, 2, 1))

    result = run_monthly_renewals(gym, today=date(2024, 2, 20), force=True)

    assert result['ran'] is False
    assert result['reason'] == 'already_ran'


def test_notify_only_does_not_renew(gym, config, make_membership, settings):
    settings.WHATSAPP_ENABLED = False
    config.notify_only = True
    config.save()
    auto = make_membership(auto_renewal=True)

    result = run_monthly_renewals(gym, today=date(2024, 2, 1))

    assert result['ran'] is True
    assert result['notify_only'] is True
    assert result['total'] == 1
    assert result['renewed'] == 0
    auto.refresh_from_db()
    assert auto.status == Membership.Status.ACTIVE
    assert MonthlyRenewalRun.objects.get(gym=gym).notify_only is True


def test_notify_only_queues_reminders(gym, config, make_membership, settings, monkeypatch):
    settings.WHATSAPP_ENABLED = True
    config.notify_only = True
    config.save()
    auto = make_membership(auto_renewal=True)

    queued = []
    monkeypatch.setattr(tasks.send_membership_expiry_reminder, 'delay', lambda **kwargs: queued.append(kwargs))

    result = run_monthly_renewals(gym, today=date(2024, 2, 1))

    assert result['notified'] == 1
    assert queued == [{'membership_id': str(auto.pk), 'days_until_expiry': -31}]


def test_beat_task_keeps_going_when_one_gym_fails(gym, other_gym, monkeypatch):
    seen = []

    def fake_run(g, today=None, force=False):
        seen.append(g.pk)
        if g.pk == gym.pk:
            raise RuntimeError("boom")
        return {'ran': True, 'renewed': 0, 'failed': 0}

    monkeypatch.setattr('memberships.automation.run_monthly_renewals', fake_run)

    message = tasks.run_monthly_auto_renewals()

    assert set(seen) == {gym.pk, other_gym.pk}
    assert message == "Monthly renewal ran for 1 gyms"
