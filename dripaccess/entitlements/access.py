"""
Access gate.

Answers "may this user reach this resource right now?" with a typed
decision. It never raises for a missing entitlement and never writes. When the
database cannot be read it denies access.

    gate = AccessGate()
    decision = gate.evaluate(user.pk, RequiredCapability.six_month_only())
    if not decision.allowed:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError
from django.utils import timezone

from dripaccess.entitlements.constants import AccessReason
from dripaccess.entitlements.constants import CapabilityKind
from dripaccess.entitlements.store import EntitlementStore
from dripaccess.payments.constants import PlanType
from dripaccess.users.directory import find_user_by_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequiredCapability:
    kind: CapabilityKind
    webinar_id: int | None = None

    @classmethod
    def any_active_subscription(cls) -> RequiredCapability:
        return cls(kind=CapabilityKind.ANY_ACTIVE_SUBSCRIPTION)

    @classmethod
    def six_month_only(cls) -> RequiredCapability:
        return cls(kind=CapabilityKind.SIX_MONTH_ONLY)

    @classmethod
    def webinar(cls, webinar_id: int) -> RequiredCapability:
        return cls(kind=CapabilityKind.WEBINAR_GRANT, webinar_id=webinar_id)

    @classmethod
    def from_kind(cls, kind: str, webinar_id=None) -> RequiredCapability:
        """Build a capability from its string kind. Raises ValueError."""
        capability_kind = CapabilityKind(kind)
        if capability_kind == CapabilityKind.WEBINAR_GRANT:
            if webinar_id in (None, ""):
                msg = "webinar_grant requires a webinar id"
                raise ValueError(msg)
            return cls.webinar(int(webinar_id))
        return cls(kind=capability_kind)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    subscription_id: int | None = None
    plan_type: str | None = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": str(self.reason),
            "subscriptionId": self.subscription_id,
            "planType": self.plan_type,
        }


class AccessGate:
    """Evaluates access from stored entitlements only."""

    def __init__(self, store: EntitlementStore | None = None):
        self.store = store or EntitlementStore()

    def evaluate(
        self,
        user_id,
        capability: RequiredCapability,
        now: datetime | None = None,
    ) -> AccessDecision:
        now = now or timezone.now()
        try:
            if capability.kind == CapabilityKind.WEBINAR_GRANT:
                return self._evaluate_webinar(user_id, capability.webinar_id)
            return self._evaluate_subscription(user_id, capability, now)
        except DatabaseError:
            logger.exception("Entitlement lookup failed for user=%s", user_id)
            return AccessDecision(
                allowed=False,
                reason=AccessReason.STORAGE_UNAVAILABLE,
            )

    def _evaluate_webinar(self, user_id, webinar_id) -> AccessDecision:
        grant = self.store.get_active_webinar_grant(user_id, webinar_id)
        if grant is None:
            return AccessDecision(allowed=False, reason=AccessReason.NO_WEBINAR_GRANT)
        return AccessDecision(allowed=True, reason=AccessReason.WEBINAR_GRANTED)

    def _evaluate_subscription(
        self,
        user_id,
        capability: RequiredCapability,
        now: datetime,
    ) -> AccessDecision:
        valid = [
            sub
            for sub in self.store.get_active_subscriptions(user_id)
            if sub.is_valid_at(now)
        ]

        # A valid SixMonth row outranks any FourDay row, whichever started last.
        six_month = next(
            (sub for sub in valid if sub.plan_type == PlanType.SIX_MONTH),
            None,
        )
        if six_month is not None:
            return AccessDecision(
                allowed=True,
                reason=AccessReason.SIX_MONTH_ACTIVE,
                subscription_id=six_month.pk,
                plan_type=six_month.plan_type,
            )

        if valid:
            four_day = valid[0]
            if capability.kind == CapabilityKind.SIX_MONTH_ONLY:
                return AccessDecision(
                    allowed=False,
                    reason=AccessReason.REQUIRES_SIX_MONTH,
                    subscription_id=four_day.pk,
                    plan_type=four_day.plan_type,
                )
            return AccessDecision(
                allowed=True,
                reason=AccessReason.FOUR_DAY_ACTIVE,
                subscription_id=four_day.pk,
                plan_type=four_day.plan_type,
            )

        user = find_user_by_id(user_id)
        if user is None or not user.has_purchased_plan:
            return AccessDecision(allowed=False, reason=AccessReason.NEVER_SUBSCRIBED)
        return AccessDecision(allowed=False, reason=AccessReason.NO_ACTIVE_ENTITLEMENT)
