from io import StringIO

import pytest
from django.core.management import call_command

from dripaccess.entitlements.models import Subscription
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.tests.factories import OrderFactory
from dripaccess.payments.tests.factories import UnappliedPaymentFactory

pytestmark = pytest.mark.django_db


class TestReplayUnappliedPayments:
    def test_replays_open_records(self):
        order = OrderFactory()
        record = UnappliedPaymentFactory(gateway_order_id=order.gateway_order_id)
        out = StringIO()

        call_command("replay_unapplied_payments", stdout=out)

        order.refresh_from_db()
        assert order.status == OrderStatus.CAPTURED
        assert order.gateway_payment_id == record.gateway_payment_id
        assert Subscription.objects.filter(order=order).count() == 1
        record.refresh_from_db()
        assert record.resolved_at is not None
        assert "Complete. Applied: 1, Failed: 0" in out.getvalue()

    def test_failed_replay_is_reported_and_stays_open(self):
        record = UnappliedPaymentFactory(gateway_order_id="order_gone")
        out = StringIO()

        call_command("replay_unapplied_payments", stdout=out)

        record.refresh_from_db()
        assert record.resolved_at is None
        assert record.attempts == 2
        assert "Failed: order_gone (unknown_order)" in out.getvalue()
        assert "Complete. Applied: 0, Failed: 1" in out.getvalue()

    def test_order_filter(self):
        first = OrderFactory()
        second = OrderFactory()
        UnappliedPaymentFactory(gateway_order_id=first.gateway_order_id)
        UnappliedPaymentFactory(gateway_order_id=second.gateway_order_id)

        call_command(
            "replay_unapplied_payments",
            "--order",
            first.gateway_order_id,
            stdout=StringIO(),
        )

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == OrderStatus.CAPTURED
        assert second.status == OrderStatus.PENDING

    def test_dry_run_changes_nothing(self):
        order = OrderFactory()
        record = UnappliedPaymentFactory(gateway_order_id=order.gateway_order_id)
        out = StringIO()

        call_command("replay_unapplied_payments", "--dry-run", stdout=out)

        order.refresh_from_db()
        record.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert record.resolved_at is None
        assert "[DRY RUN] Would have replayed 1 capture(s)." in out.getvalue()

    def test_nothing_to_replay(self):
        out = StringIO()

        call_command("replay_unapplied_payments", stdout=out)

        assert "No unapplied captures to replay." in out.getvalue()
