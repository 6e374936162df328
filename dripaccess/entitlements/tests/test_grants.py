from datetime import timedelta
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import CommandError
from django.core.management import call_command
from django.db import connection
from django.utils import timezone

from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.entitlements.grants import grant_access
from dripaccess.entitlements.grants import start_free_trial
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.resolver import EntitlementResolver
from dripaccess.entitlements.tests.factories import SubscriptionFactory
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import AlreadyEntitled
from dripaccess.payments.exceptions import FreeTrialUnavailable
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import UserNotFound
from dripaccess.payments.models import Order
from dripaccess.users.directory import lock_user
from dripaccess.users.tests.factories import UserFactory

pytestmark = pytest.mark.django_db


class TestGrantAccess:
    def test_grants_plan_without_a_payment(self, staff_user):
        user = UserFactory(email="learner@example.com")
        now = timezone.now()

        subscription = grant_access(
            "Learner@Example.com",
            "FOUR_DAY",
            granted_by=staff_user,
            now=now,
        )

        assert subscription.user == user
        assert subscription.reason == EntitlementReason.ADMIN_GRANT
        assert subscription.granted_by == staff_user
        assert subscription.order is None
        assert subscription.end_date == now + timedelta(days=4)
        assert subscription.unlocked_content["unlocked_videos"] == [1]
        assert not Order.objects.exists()
        user.refresh_from_db()
        assert user.account_active is True

    def test_unknown_email(self):
        with pytest.raises(UserNotFound):
            grant_access("nobody@example.com", "SIX_MONTH")

    def test_webinar_is_not_grantable(self):
        UserFactory(email="learner@example.com")

        with pytest.raises(InvalidPlanType):
            grant_access("learner@example.com", "PAID_WEBINAR")

    def test_refuses_duplicate_active_plan(self):
        existing = SubscriptionFactory(plan_type=PlanType.SIX_MONTH)

        with pytest.raises(AlreadyEntitled):
            grant_access(existing.user.email, "SIX_MONTH")
        assert Subscription.objects.count() == 1

    def test_user_row_is_locked_before_the_duplicate_check(self):
        user = UserFactory(email="learner@example.com")
        calls = []
        resolver = EntitlementResolver()
        check = resolver.store.has_valid_subscription

        def locking(user_id):
            calls.append(("lock", connection.in_atomic_block))
            return lock_user(user_id)

        def checking(*args):
            calls.append(("check", connection.in_atomic_block))
            return check(*args)

        with (
            patch("dripaccess.entitlements.grants.lock_user", side_effect=locking),
            patch.object(resolver.store, "has_valid_subscription", checking),
        ):
            grant_access(user.email, "FOUR_DAY", resolver=resolver)

        assert calls == [("lock", True), ("check", True)]

    def test_second_grant_after_lock_is_refused(self):
        user = UserFactory(email="learner@example.com")

        grant_access(user.email, "FOUR_DAY")
        with pytest.raises(AlreadyEntitled):
            grant_access(user.email, "FOUR_DAY")

        assert Subscription.objects.filter(user=user, is_active=True).count() == 1

    def test_expired_plan_can_be_granted_again(self):
        expired = SubscriptionFactory(
            start_date=timezone.now() - timedelta(days=30),
        )

        grant_access(expired.user.email, "FOUR_DAY")

        assert Subscription.objects.filter(user=expired.user).count() == 2

    def test_six_month_grant_deactivates_four_day(self):
        four_day = SubscriptionFactory()

        grant_access(four_day.user.email, "SIX_MONTH")

        four_day.refresh_from_db()
        assert four_day.is_active is False


class TestFreeTrial:
    def test_starts_a_thirty_day_trial(self, user):
        now = timezone.now()

        subscription = start_free_trial(user, now=now)

        assert subscription.reason == EntitlementReason.FREE_TRIAL
        assert subscription.plan_type == PlanType.FOUR_DAY
        assert subscription.end_date == now + timedelta(days=30)
        assert subscription.unlocked_content["unlocked_videos"] == [1, 2, 3]

    def test_only_one_trial_per_user(self, user):
        start_free_trial(user)

        with pytest.raises(FreeTrialUnavailable):
            start_free_trial(user)
        assert Subscription.objects.filter(user=user).count() == 1

    def test_expired_trial_cannot_be_restarted(self, user):
        start_free_trial(user, now=timezone.now() - timedelta(days=60))

        with pytest.raises(FreeTrialUnavailable):
            start_free_trial(user)


class TestGrantAccessCommand:
    def test_grants_plan(self, staff_user):
        user = UserFactory(email="learner@example.com")
        out = StringIO()

        call_command(
            "grant_access",
            "learner@example.com",
            "SIX_MONTH",
            "--by",
            staff_user.email,
            stdout=out,
        )

        subscription = Subscription.objects.get(user=user)
        assert subscription.plan_type == PlanType.SIX_MONTH
        assert subscription.granted_by == staff_user
        assert "Granted SIX_MONTH" in out.getvalue()

    def test_unknown_user_is_a_command_error(self):
        with pytest.raises(CommandError, match="not found"):
            call_command("grant_access", "nobody@example.com", "FOUR_DAY")

    def test_duplicate_grant_is_a_command_error(self):
        existing = SubscriptionFactory()

        with pytest.raises(CommandError, match="already has"):
            call_command("grant_access", existing.user.email, "FOUR_DAY")
