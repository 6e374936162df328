"""
Management command to re-apply verified captures that failed to resolve.

Processes open UnappliedPayment rows, oldest first, through the payment
intake. A successful replay captures the order, creates the entitlement and
closes the row; a failed one bumps ``attempts`` and leaves it open.

Usage:
    python manage.py replay_unapplied_payments
    python manage.py replay_unapplied_payments --order order_xxx
    python manage.py replay_unapplied_payments --dry-run
"""

import logging

from django.core.management.base import BaseCommand

from dripaccess.payments.exceptions import EntitlementError
from dripaccess.payments.intake import PaymentEventIntake
from dripaccess.payments.models import UnappliedPayment

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Replay verified captures whose entitlement could not be applied."

    def add_arguments(self, parser):
        parser.add_argument(
            "--order",
            dest="gateway_order_id",
            help="Only replay captures for this gateway order id.",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=50,
            help="Number of captures to replay per run (default: 50)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be replayed without replaying it",
        )

    def handle(self, *args, **options):
        records = UnappliedPayment.objects.filter(resolved_at__isnull=True)
        if options["gateway_order_id"]:
            records = records.filter(gateway_order_id=options["gateway_order_id"])
        records = list(records.order_by("created")[: options["batch_size"]])

        if not records:
            self.stdout.write(self.style.SUCCESS("No unapplied captures to replay."))
            return

        intake = PaymentEventIntake()
        applied = failed = 0
        for record in records:
            if options["dry_run"]:
                self.stdout.write(
                    f"  [DRY RUN] Would replay: {record.gateway_order_id} "
                    f"(payment {record.gateway_payment_id})",
                )
                continue

            try:
                intake.replay_unapplied(record)
            except EntitlementError as exc:
                failed += 1
                self.stdout.write(
                    self.style.ERROR(
                        f"  Failed: {record.gateway_order_id} ({exc.code})",
                    ),
                )
                logger.exception(
                    "Replay failed",
                    extra={
                        "gateway_order_id": record.gateway_order_id,
                        "error_code": exc.code,
                    },
                )
            else:
                applied += 1
                self.stdout.write(
                    self.style.SUCCESS(f"  Applied: {record.gateway_order_id}"),
                )

        if options["dry_run"]:
            self.stdout.write(
                self.style.WARNING(
                    f"[DRY RUN] Would have replayed {len(records)} capture(s).",
                ),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f"Complete. Applied: {applied}, Failed: {failed}"),
            )
