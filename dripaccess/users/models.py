from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for Drip Access.

    Two account-level flags are owned by the entitlement engine and are
    distinct from Django's ``is_active`` (which only controls login):

    - ``account_active``: set when a paid plan is activated for the account.
    - ``has_purchased_plan``: set the first time the account completes any
      plan (purchase, admin grant or free trial). The access gate uses it to
      tell "never subscribed" apart from "subscription lapsed".
    """

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Name of User"), blank=True, max_length=255)
    email = models.EmailField(_("email address"), unique=True)

    account_active = models.BooleanField(
        _("Account active"),
        default=False,
        help_text=_("Set when a paid plan has been activated for this account."),
    )
    has_purchased_plan = models.BooleanField(
        _("Has purchased a plan"),
        default=False,
        help_text=_(
            "True once the account has completed any plan purchase or grant.",
        ),
    )

    first_name = None  # type: ignore[assignment]
    last_name = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return self.email or self.username
