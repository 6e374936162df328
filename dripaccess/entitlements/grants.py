"""
Administrative grants and free trials.

Both create subscriptions without a payment; they are recorded with their own
EntitlementReason and share the resolver's activation path so plan durations
and drip schedules match purchased plans exactly.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.db import IntegrityError
from django.db import transaction
from django.utils import timezone

from dripaccess.entitlements.constants import EntitlementReason
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.resolver import EntitlementResolver
from dripaccess.entitlements.schedule import compute_free_trial_unlock_state
from dripaccess.entitlements.schedule import free_trial_window
from dripaccess.payments.constants import SUBSCRIPTION_PLAN_TYPES
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import AlreadyEntitled
from dripaccess.payments.exceptions import FreeTrialUnavailable
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import UserNotFound
from dripaccess.payments.ledger import parse_plan_type
from dripaccess.users.directory import find_user_by_email
from dripaccess.users.directory import lock_user

logger = logging.getLogger(__name__)


def grant_access(
    email: str,
    plan_type,
    granted_by=None,
    now: datetime | None = None,
    resolver: EntitlementResolver | None = None,
) -> Subscription:
    """
    Grant a FourDay or SixMonth plan to the user with ``email``.

    The user row is locked while checking and creating, so concurrent grants
    for the same user serialize and only one of them succeeds.

    Raises:
        UserNotFound: no user has that email.
        InvalidPlanType: plan_type is not a subscription plan.
        AlreadyEntitled: the user already holds a valid plan of that type.
    """
    plan = parse_plan_type(plan_type)
    if plan not in SUBSCRIPTION_PLAN_TYPES:
        raise InvalidPlanType(plan_type)

    user = find_user_by_email(email)
    if user is None:
        raise UserNotFound(email)

    resolver = resolver or EntitlementResolver()
    now = now or timezone.now()
    with transaction.atomic():
        if lock_user(user.pk) is None:
            raise UserNotFound(email)
        if resolver.store.has_valid_subscription(user.pk, plan, now):
            raise AlreadyEntitled(plan)
        subscription = resolver.activate(
            user.pk,
            plan,
            now,
            reason=EntitlementReason.ADMIN_GRANT,
            granted_by=granted_by,
        )
    logger.info(
        "Admin grant: %s to user=%s by %s",
        plan,
        user.pk,
        getattr(granted_by, "pk", None),
    )
    return subscription


def start_free_trial(
    user,
    now: datetime | None = None,
    resolver: EntitlementResolver | None = None,
) -> Subscription:
    """
    Start the one-time free trial for ``user``.

    Raises:
        FreeTrialUnavailable: the user already had a free trial.
    """
    resolver = resolver or EntitlementResolver()
    now = now or timezone.now()
    if resolver.store.has_free_trial(user.pk):
        raise FreeTrialUnavailable
    try:
        with transaction.atomic():
            subscription = resolver.activate(
                user.pk,
                PlanType.FOUR_DAY,
                now,
                reason=EntitlementReason.FREE_TRIAL,
                duration=free_trial_window(),
                unlock_state=compute_free_trial_unlock_state(now),
            )
    except IntegrityError as exc:
        raise FreeTrialUnavailable from exc
    logger.info("Started free trial for user=%s", user.pk)
    return subscription
