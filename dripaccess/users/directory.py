"""
User directory used by the entitlement engine.

The engine never reaches into the User model directly; it goes through these
helpers so account flags are always written with targeted UPDATEs and never
clobber unrelated fields of a stale in-memory instance.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model

logger = logging.getLogger(__name__)


def find_user_by_id(user_id):
    User = get_user_model()
    return User.objects.filter(pk=user_id).first()


def find_user_by_email(email: str):
    if not email:
        return None
    User = get_user_model()
    return User.objects.filter(email__iexact=email.strip()).first()


def lock_user(user_id):
    """
    Lock a user row for the rest of the current transaction.

    Serializes writers that check a user's entitlements before adding one.
    Must be called inside ``transaction.atomic``.
    """
    User = get_user_model()
    return User.objects.select_for_update().filter(pk=user_id).first()


def set_account_active(user_id, active: bool) -> None:  # noqa: FBT001
    User = get_user_model()
    updated = User.objects.filter(pk=user_id).update(account_active=active)
    if not updated:
        logger.warning("set_account_active: no user with id=%s", user_id)


def mark_plan_purchased(user_id) -> None:
    """Record that the account has completed at least one plan."""
    User = get_user_model()
    User.objects.filter(pk=user_id, has_purchased_plan=False).update(
        has_purchased_plan=True,
    )
