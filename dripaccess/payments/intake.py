"""
Payment event intake.

Two thin adapters feed captured payments into the entitlement resolver:

- ``confirm_client_payment``: the browser posts the checkout response after
  the gateway redirect.
- ``process_webhook``: the gateway posts ``payment.captured`` /
  ``payment.failed`` events.

Both verify the signature first, then capture the order and resolve it inside
one transaction. Because capture and resolution commit together, an order
that is already CAPTURED has always been resolved, so replays (gateway
retries, or the second of the two paths to arrive) are no-ops.

If resolution fails for any reason other than a transient conflict, the
capture rolls back with it and an UnappliedPayment row records the verified
payment so ``replay_unapplied`` can apply it later.

Key events handled:
- payment.captured: capture the order and create the entitlement
- payment.failed: mark a pending order FAILED
Any other event is acknowledged and ignored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import OperationalError
from django.db import transaction

from dripaccess.entitlements.resolver import EntitlementResolver
from dripaccess.entitlements.resolver import Resolution
from dripaccess.payments import signatures
from dripaccess.payments.constants import WebhookEvent
from dripaccess.payments.exceptions import EntitlementError
from dripaccess.payments.exceptions import MalformedEvent
from dripaccess.payments.exceptions import TransactionConflict
from dripaccess.payments.exceptions import VerificationFailed
from dripaccess.payments.ledger import OrderLedger

if TYPE_CHECKING:
    from dripaccess.payments.models import UnappliedPayment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntakeResult:
    """
    What an intake call did.

    ``duplicate`` is True when the event had already been applied.
    ``ignored`` is True for events we do not act on.
    """

    event: str
    gateway_order_id: str | None = None
    duplicate: bool = False
    ignored: bool = False
    resolution: Resolution | None = None


class PaymentEventIntake:
    """Verifies gateway confirmations and applies them exactly once."""

    def __init__(self, ledger: OrderLedger | None = None, resolver=None):
        self.ledger = ledger or OrderLedger()
        self.resolver = resolver or EntitlementResolver()

    def confirm_client_payment(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> IntakeResult:
        """
        Apply a client-side checkout confirmation.

        Raises:
            VerificationFailed: the signature does not match. Nothing changes.
            UnknownOrder, InvalidOrderTransition, TransactionConflict, and any
            resolver error.
        """
        if not gateway_order_id or not gateway_payment_id:
            raise VerificationFailed("Missing order or payment id.")
        payload = signatures.checkout_payload(gateway_order_id, gateway_payment_id)
        secret = settings.PAYMENT_GATEWAY_KEY_SECRET
        if not signatures.verify(payload, signature, secret):
            logger.warning(
                "Checkout signature mismatch for order %s (payment=%s)",
                gateway_order_id,
                gateway_payment_id,
            )
            raise VerificationFailed

        return self._capture(
            "checkout.verified",
            gateway_order_id,
            gateway_payment_id,
            signature,
        )

    def process_webhook(self, body: bytes, signature: str | None) -> IntakeResult:
        """
        Apply a gateway webhook delivery.

        ``body`` must be the raw request bytes exactly as received.

        Raises:
            VerificationFailed: signature missing or wrong. Nothing changes.
            MalformedEvent: the verified body is not a usable event.
            UnknownOrder, InvalidOrderTransition, TransactionConflict, and any
            resolver error.
        """
        secret = settings.PAYMENT_GATEWAY_WEBHOOK_SECRET
        if not signatures.verify(body, signature, secret):
            logger.warning("Rejected webhook with invalid or missing signature")
            raise VerificationFailed

        event, payment = self._parse_event(body)
        handler = {
            WebhookEvent.PAYMENT_CAPTURED: self._handle_captured,
            WebhookEvent.PAYMENT_FAILED: self._handle_failed,
        }.get(event)
        if handler is None:
            logger.info("Ignoring webhook event %s", event)
            return IntakeResult(event=event, ignored=True)
        return handler(event, payment, signature)

    def _handle_captured(
        self,
        event: str,
        payment: dict,
        signature: str,
    ) -> IntakeResult:
        gateway_order_id = payment.get("order_id")
        gateway_payment_id = payment.get("id")
        if not gateway_order_id or not gateway_payment_id:
            raise MalformedEvent(f"{event} is missing order_id or payment id.")
        return self._capture(event, gateway_order_id, gateway_payment_id, signature)

    def _handle_failed(
        self,
        event: str,
        payment: dict,
        signature: str,
    ) -> IntakeResult:
        gateway_order_id = payment.get("order_id")
        if not gateway_order_id:
            raise MalformedEvent(f"{event} is missing order_id.")
        try:
            self.ledger.mark_failed(gateway_order_id)
        except OperationalError as exc:
            raise TransactionConflict from exc
        return IntakeResult(event=event, gateway_order_id=gateway_order_id)

    def replay_unapplied(self, record: UnappliedPayment) -> IntakeResult:
        """
        Re-apply a capture recorded by ``record_unapplied``.

        The signature was verified when the record was written, so it is not
        checked again. A failure re-records the row and propagates.
        """
        logger.info(
            "Replaying unapplied capture for order %s (payment=%s)",
            record.gateway_order_id,
            record.gateway_payment_id,
        )
        return self._capture(
            record.source,
            record.gateway_order_id,
            record.gateway_payment_id,
            record.gateway_signature,
        )

    def _capture(
        self,
        event: str,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> IntakeResult:
        try:
            with transaction.atomic():
                capture = self.ledger.mark_captured(
                    gateway_order_id,
                    gateway_payment_id,
                    signature,
                )
                self.ledger.close_unapplied(gateway_order_id)
                if not capture.newly_captured:
                    logger.info(
                        "Duplicate %s for order %s; already resolved",
                        event,
                        gateway_order_id,
                    )
                    return IntakeResult(
                        event=event,
                        gateway_order_id=gateway_order_id,
                        duplicate=True,
                    )
                resolution = self.resolver.resolve(capture.order)
        except OperationalError as exc:
            logger.warning(
                "Transaction conflict capturing order %s: %s",
                gateway_order_id,
                exc,
            )
            raise TransactionConflict from exc
        except TransactionConflict:
            raise
        except EntitlementError as exc:
            # The capture rolled back with the resolution.
            self.ledger.record_unapplied(
                event,
                gateway_order_id,
                gateway_payment_id,
                signature,
                exc,
            )
            raise

        return IntakeResult(
            event=event,
            gateway_order_id=gateway_order_id,
            resolution=resolution,
        )

    @staticmethod
    def _parse_event(body: bytes) -> tuple[str, dict]:
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, ValueError) as exc:
            raise MalformedEvent("Webhook body is not valid JSON.") from exc
        if not isinstance(data, dict) or not isinstance(data.get("event"), str):
            raise MalformedEvent("Webhook body has no event name.")
        payload = data.get("payload")
        payment = payload.get("payment") if isinstance(payload, dict) else None
        entity = payment.get("entity") if isinstance(payment, dict) else None
        if data["event"].startswith("payment.") and not isinstance(entity, dict):
            raise MalformedEvent(f"{data['event']} has no payment entity.")
        return data["event"], entity if isinstance(entity, dict) else {}
