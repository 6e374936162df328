"""
Plan duration and drip-unlock schedule.

Pure functions with no database access. Every subscription-creating path
(webhook, client confirmation, admin grant, free trial) goes through these so
the arithmetic lives in exactly one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from typing import Any

from django.utils.dateparse import parse_datetime

from dripaccess.entitlements.constants import FOUR_DAY_CONTENT_SLOTS
from dripaccess.entitlements.constants import FREE_TRIAL_DAYS
from dripaccess.entitlements.constants import FREE_TRIAL_UNLOCKED_SLOTS
from dripaccess.entitlements.constants import PLAN_DURATION_DAYS
from dripaccess.entitlements.constants import SLOT_EXPIRY_OFFSET_DAYS
from dripaccess.entitlements.constants import content_key
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import InvalidPlanType


@dataclass(frozen=True)
class UnlockState:
    """
    Drip-unlock state embedded in a four-day subscription.

    ``expiry_dates`` maps content keys (``video1``..``videoN``) to absolute
    expiry timestamps; expiry strictly increases with the slot number.
    """

    current_day: int
    unlocked_videos: tuple[int, ...]
    expiry_dates: dict[str, datetime] = field(default_factory=dict)

    def expiry_for(self, slot: int) -> datetime | None:
        return self.expiry_dates.get(content_key(slot))

    def to_document(self) -> dict[str, Any]:
        return {
            "current_day": self.current_day,
            "unlocked_videos": list(self.unlocked_videos),
            "expiry_dates": {
                key: value.isoformat() for key, value in self.expiry_dates.items()
            },
        }

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> UnlockState | None:
        if not document:
            return None
        expiry_dates = {}
        for key, value in (document.get("expiry_dates") or {}).items():
            parsed = value if isinstance(value, datetime) else parse_datetime(value)
            if parsed is not None:
                expiry_dates[key] = parsed
        return cls(
            current_day=int(document.get("current_day", 1)),
            unlocked_videos=tuple(
                sorted({int(v) for v in document.get("unlocked_videos", [])}),
            ),
            expiry_dates=expiry_dates,
        )


def plan_duration(plan_type) -> timedelta:
    """Validity window of a subscription plan."""
    try:
        return timedelta(days=PLAN_DURATION_DAYS[PlanType(plan_type)])
    except (KeyError, ValueError) as exc:
        raise InvalidPlanType(plan_type) from exc


def compute_unlock_state(plan_type, now: datetime) -> UnlockState | None:
    """
    Initial unlock state for a newly purchased plan.

    Only FOUR_DAY plans drip content: day 1 is unlocked immediately and slot k
    expires at ``now + (k + 2)`` days. Other plans return None.
    """
    plan = PlanType(plan_type)
    if plan != PlanType.FOUR_DAY:
        return None
    return UnlockState(
        current_day=1,
        unlocked_videos=(1,),
        expiry_dates={
            content_key(slot): now + timedelta(days=slot + SLOT_EXPIRY_OFFSET_DAYS)
            for slot in range(1, FOUR_DAY_CONTENT_SLOTS + 1)
        },
    )


def free_trial_window() -> timedelta:
    return timedelta(days=FREE_TRIAL_DAYS)


def compute_free_trial_unlock_state(now: datetime) -> UnlockState:
    """
    Unlock state for a free trial.

    The first three slots are open from the start. Expiries are staggered so
    the last slot closes exactly when the trial ends.
    """
    trial_end = now + free_trial_window()
    return UnlockState(
        current_day=1,
        unlocked_videos=FREE_TRIAL_UNLOCKED_SLOTS,
        expiry_dates={
            content_key(slot): trial_end
            - timedelta(days=FOUR_DAY_CONTENT_SLOTS - slot)
            for slot in range(1, FOUR_DAY_CONTENT_SLOTS + 1)
        },
    )


def is_content_visible(subscription, slot: int, now: datetime) -> bool:
    """
    Whether drip slot ``slot`` is currently visible under ``subscription``.

    The stored UnlockState is the source of truth: the slot must be unlocked,
    not yet past its expiry, and the subscription itself must still be valid.
    Six-month subscriptions carry no drip state and see every slot.
    """
    if not subscription.is_valid_at(now):
        return False
    if subscription.plan_type == PlanType.SIX_MONTH:
        return True
    state = UnlockState.from_document(subscription.unlocked_content)
    if state is None or slot not in state.unlocked_videos:
        return False
    expiry = state.expiry_for(slot)
    return expiry is not None and now <= expiry
