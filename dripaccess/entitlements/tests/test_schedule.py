from datetime import datetime
from datetime import timedelta
from datetime import timezone as dt_timezone

import pytest

from dripaccess.entitlements.schedule import UnlockState
from dripaccess.entitlements.schedule import compute_free_trial_unlock_state
from dripaccess.entitlements.schedule import compute_unlock_state
from dripaccess.entitlements.schedule import is_content_visible
from dripaccess.entitlements.schedule import plan_duration
from dripaccess.entitlements.tests.factories import SixMonthSubscriptionFactory
from dripaccess.entitlements.tests.factories import SubscriptionFactory
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import InvalidPlanType

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=dt_timezone.utc)


def _expiries(state):
    return [state.expiry_for(slot) for slot in range(1, 5)]


def test_plan_durations():
    assert plan_duration(PlanType.FOUR_DAY) == timedelta(days=4)
    assert plan_duration("SIX_MONTH") == timedelta(days=180)


@pytest.mark.parametrize("plan", ["PAID_WEBINAR", "LIFETIME", None])
def test_plan_duration_rejects_non_subscription_plans(plan):
    with pytest.raises(InvalidPlanType):
        plan_duration(plan)


def test_four_day_unlock_state():
    state = compute_unlock_state(PlanType.FOUR_DAY, NOW)

    assert state.current_day == 1
    assert state.unlocked_videos == (1,)
    assert state.expiry_for(1) == NOW + timedelta(days=3)
    assert state.expiry_for(4) == NOW + timedelta(days=6)


@pytest.mark.parametrize(
    "start",
    [
        NOW,
        NOW + timedelta(hours=23, minutes=59),
        datetime(2024, 2, 28, 23, 0, tzinfo=dt_timezone.utc),
    ],
)
def test_expiry_strictly_increases_by_slot(start):
    expiries = _expiries(compute_unlock_state(PlanType.FOUR_DAY, start))

    assert all(a < b for a, b in zip(expiries, expiries[1:], strict=False))


def test_six_month_has_no_drip_state():
    assert compute_unlock_state(PlanType.SIX_MONTH, NOW) is None


def test_free_trial_state_ends_with_the_trial():
    state = compute_free_trial_unlock_state(NOW)
    expiries = _expiries(state)

    assert state.unlocked_videos == (1, 2, 3)
    assert expiries[-1] == NOW + timedelta(days=30)
    assert all(a < b for a, b in zip(expiries, expiries[1:], strict=False))


def test_unlock_state_document_round_trip():
    state = compute_unlock_state(PlanType.FOUR_DAY, NOW)

    assert UnlockState.from_document(state.to_document()) == state
    assert UnlockState.from_document(None) is None


class TestContentVisibility:
    def test_unlocked_slot_is_visible_until_its_expiry(self):
        subscription = SubscriptionFactory.build(start_date=NOW)

        assert is_content_visible(subscription, 1, NOW + timedelta(days=1))
        assert not is_content_visible(subscription, 2, NOW + timedelta(days=1))

    def test_slot_hidden_once_subscription_expires(self):
        subscription = SubscriptionFactory.build(start_date=NOW)

        # Slot 1 nominally lasts 3 days but the plan ends after 4.
        assert is_content_visible(subscription, 1, NOW + timedelta(days=3))
        assert not is_content_visible(
            subscription,
            1,
            NOW + timedelta(days=4, seconds=1),
        )

    def test_inactive_subscription_sees_nothing(self):
        subscription = SubscriptionFactory.build(start_date=NOW, is_active=False)

        assert not is_content_visible(subscription, 1, NOW)

    def test_six_month_sees_every_slot(self):
        subscription = SixMonthSubscriptionFactory.build(start_date=NOW)

        assert is_content_visible(subscription, 4, NOW + timedelta(days=100))
