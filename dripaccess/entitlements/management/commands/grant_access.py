"""
Management command to grant a plan without a payment.

Usage:
    python manage.py grant_access viewer@example.com FOUR_DAY
    python manage.py grant_access viewer@example.com SIX_MONTH --by admin@example.com
"""

from django.core.management.base import BaseCommand
from django.core.management.base import CommandError

from dripaccess.entitlements.grants import grant_access
from dripaccess.payments.constants import SUBSCRIPTION_PLAN_TYPES
from dripaccess.payments.exceptions import AlreadyEntitled
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import UserNotFound
from dripaccess.users.directory import find_user_by_email


class Command(BaseCommand):
    help = "Grant a FOUR_DAY or SIX_MONTH plan to a user by email."

    def add_arguments(self, parser):
        parser.add_argument("email", help="Email of the user receiving the plan.")
        parser.add_argument(
            "plan_type",
            choices=sorted(str(plan) for plan in SUBSCRIPTION_PLAN_TYPES),
        )
        parser.add_argument(
            "--by",
            dest="granted_by",
            help="Email of the staff user issuing the grant.",
        )

    def handle(self, *args, **options):
        granted_by = None
        if options["granted_by"]:
            granted_by = find_user_by_email(options["granted_by"])
            if granted_by is None:
                msg = f"Granting user {options['granted_by']!r} not found."
                raise CommandError(msg)

        try:
            subscription = grant_access(
                options["email"],
                options["plan_type"],
                granted_by=granted_by,
            )
        except (UserNotFound, AlreadyEntitled, InvalidPlanType) as exc:
            raise CommandError(exc.detail) from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"Granted {subscription.plan_type!s} to {options['email']} "
                f"until {subscription.end_date:%Y-%m-%d %H:%M} UTC.",
            ),
        )
