from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from activities.models import Activity, MembershipPlan, MembershipTier
from gyms.models import Gym, User
from members.models import Member
from memberships.models import Membership


@pytest.fixture
def gym(db):
    return Gym.objects.create(name="Iron Temple", email="info@irontemple.test", phone="+5491155550000")


@pytest.fixture
def other_gym(db):
    return Gym.objects.create(name="Other Gym")


@pytest.fixture
def user(gym):
    return User.objects.create_user(
        username="admin", email="admin@irontemple.test", password="secret123", role="admin", gym=gym
    )


@pytest.fixture
def superadmin(db):
    return User.objects.create_user(
        username="root", email="root@gymops.test", password="secret123", role="superadmin"
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def member(gym):
    return Member.objects.create(gym=gym, first_name="Ana", last_name="Gomez", phone="1155550001")


@pytest.fixture
def activity(gym):
    return Activity.objects.create(gym=gym, name="Crossfit")


@pytest.fixture
def priced_activity(activity):
    MembershipTier.objects.create(activity=activity, name="Monthly", cost=Decimal("1200.00"), position=0)
    MembershipTier.objects.create(activity=activity, name="Student", cost=Decimal("900.00"), position=1)
    return activity


@pytest.fixture
def plan(gym, activity):
    return MembershipPlan.objects.create(
        gym=gym, activity=activity, name="Crossfit monthly", cost=Decimal("1100.00"), duration_days=30
    )


@pytest.fixture
def make_membership(gym, member, activity):
    def _make(**kwargs):
        defaults = {
            'gym': gym,
            'member': member,
            'activity': activity,
            'cost': Decimal("1000.00"),
            'start_date': date(2023, 12, 1),
            'end_date': date(2024, 1, 1),
            'status': Membership.Status.ACTIVE,
        }
        defaults.update(kwargs)
        return Membership.objects.create(**defaults)
    return _make


@pytest.fixture
def membership(make_membership):
    return make_membership()
