"""
Order ledger.

Records payment intents before the user pays and their eventual outcome.

    ledger = OrderLedger()
    order = ledger.create_order(user, Decimal("199"), "INR", PlanType.FOUR_DAY)
    ...
    result = ledger.mark_captured(order_id, payment_id, signature)
    if result.newly_captured:
        resolver.resolve(result.order)

Status transitions are PENDING → CAPTURED and PENDING → FAILED only. Rows are
locked with select_for_update while transitioning so two racing confirmations
for the same order serialize on the row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from decimal import InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from dripaccess.catalog.selectors import get_webinar
from dripaccess.payments.constants import DEFAULT_CURRENCY
from dripaccess.payments.constants import MAX_RECEIPT_LENGTH
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.constants import PLAN_PRICES
from dripaccess.payments.constants import PlanType
from dripaccess.payments.exceptions import InvalidOrderRequest
from dripaccess.payments.exceptions import InvalidOrderTransition
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import UnknownOrder
from dripaccess.payments.exceptions import UnknownWebinar
from dripaccess.payments.gateway import PaymentGatewayClient
from dripaccess.payments.gateway import get_gateway_client
from dripaccess.payments.models import Order
from dripaccess.payments.models import UnappliedPayment

if TYPE_CHECKING:
    from dripaccess.payments.exceptions import EntitlementError
    from dripaccess.users.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of mark_captured; ``newly_captured`` is False on replays."""

    order: Order
    newly_captured: bool


def parse_plan_type(value) -> PlanType:
    try:
        return PlanType(value)
    except ValueError as exc:
        raise InvalidPlanType(value) from exc


def plan_price(plan_type: PlanType) -> Decimal:
    """List price of a subscription plan; settings.PLAN_PRICES overrides."""
    prices = getattr(settings, "PLAN_PRICES", None) or PLAN_PRICES
    return Decimal(str(prices[plan_type]))


def price_currency() -> str:
    """Currency the list prices are quoted in."""
    return getattr(settings, "PAYMENT_DEFAULT_CURRENCY", None) or DEFAULT_CURRENCY


class OrderLedger:
    """Creates orders and records their gateway outcome."""

    def __init__(self, gateway: PaymentGatewayClient | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayClient:
        if self._gateway is None:
            self._gateway = get_gateway_client()
        return self._gateway

    def create_order(
        self,
        user: User,
        amount,
        currency: str,
        plan_type,
        webinar_id=None,
    ) -> Order:
        """
        Create a gateway order and persist it as PENDING.

        The gateway is called first; if it fails GatewayUnavailable propagates
        and no local row is written.

        Raises:
            InvalidPlanType: plan_type is not a PlanType.
            InvalidOrderRequest: amount is not positive or not the list price,
                or currency is not the list-price currency.
            UnknownWebinar: a webinar purchase references a missing webinar.
            GatewayUnavailable: the gateway call failed.
        """
        plan = parse_plan_type(plan_type)
        amount = self._parse_amount(amount)
        currency = self._check_currency(currency)
        webinar = get_webinar(webinar_id)

        if plan == PlanType.PAID_WEBINAR:
            if webinar is None:
                raise UnknownWebinar(webinar_id)
            expected = webinar.price
        else:
            if webinar_id not in (None, "") and webinar is None:
                # Subscription plans do not need a webinar; drop the dangling
                # reference rather than refusing the purchase.
                logger.warning(
                    "Ignoring unknown webinar_id=%s on %s order for user=%s",
                    webinar_id,
                    plan,
                    user.pk,
                )
            expected = plan_price(plan)

        if amount != expected:
            raise InvalidOrderRequest(
                f"Amount {amount} does not match the price of {plan} ({expected}).",
            )

        receipt = f"{plan}_sub_{user.pk}"[:MAX_RECEIPT_LENGTH]
        notes = {"plan_type": str(plan), "user_id": str(user.pk)}
        if webinar is not None:
            notes["webinar_id"] = str(webinar.pk)

        gateway_order = self.gateway.create_order(
            amount_minor=int((amount * 100).to_integral_value()),
            currency=currency,
            receipt=receipt,
            notes=notes,
        )

        order = Order.objects.create(
            gateway_order_id=gateway_order["id"],
            user=user,
            amount=amount,
            currency=currency,
            plan_type=plan,
            webinar=webinar,
            receipt=receipt,
            status=OrderStatus.PENDING,
        )
        logger.info(
            "Created order %s for user=%s plan=%s amount=%s %s",
            order.gateway_order_id,
            user.pk,
            plan,
            amount,
            currency,
        )
        return order

    @transaction.atomic
    def mark_captured(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> CaptureResult:
        """
        Move an order to CAPTURED.

        Idempotent: an order that is already CAPTURED is returned unchanged
        with ``newly_captured=False`` so callers skip side effects.

        Raises:
            UnknownOrder: no order with this id exists. Nothing is created.
            InvalidOrderTransition: the order already FAILED.
        """
        order = (
            Order.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )
        if order is None:
            logger.error(
                "Capture for unknown order %s (payment=%s); possible forged event",
                gateway_order_id,
                gateway_payment_id,
            )
            raise UnknownOrder(gateway_order_id)

        if order.status == OrderStatus.CAPTURED:
            if order.gateway_payment_id != gateway_payment_id:
                logger.warning(
                    "Order %s already captured with payment %s; ignoring payment %s",
                    gateway_order_id,
                    order.gateway_payment_id,
                    gateway_payment_id,
                )
            return CaptureResult(order=order, newly_captured=False)

        if order.status == OrderStatus.FAILED:
            logger.error(
                "Capture received for FAILED order %s (payment=%s)",
                gateway_order_id,
                gateway_payment_id,
            )
            raise InvalidOrderTransition(
                f"Order {gateway_order_id} is FAILED and cannot be captured.",
            )

        order.status = OrderStatus.CAPTURED
        order.gateway_payment_id = gateway_payment_id
        order.gateway_signature = signature or ""
        order.captured_at = timezone.now()
        order.save(
            update_fields=[
                "status",
                "gateway_payment_id",
                "gateway_signature",
                "captured_at",
                "modified",
            ],
        )
        logger.info(
            "Order %s captured (payment=%s, user=%s)",
            gateway_order_id,
            gateway_payment_id,
            order.user_id,
        )
        return CaptureResult(order=order, newly_captured=True)

    @transaction.atomic
    def mark_failed(self, gateway_order_id: str) -> Order:
        """
        Move a PENDING order to FAILED.

        FAILED is idempotent. A failure arriving after capture is an
        out-of-order delivery and leaves the CAPTURED order untouched.
        """
        order = (
            Order.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )
        if order is None:
            logger.error("Failure event for unknown order %s", gateway_order_id)
            raise UnknownOrder(gateway_order_id)

        if order.status == OrderStatus.FAILED:
            return order

        if order.status == OrderStatus.CAPTURED:
            logger.warning(
                "Ignoring payment failure for already captured order %s",
                gateway_order_id,
            )
            return order

        order.status = OrderStatus.FAILED
        order.failed_at = timezone.now()
        order.save(update_fields=["status", "failed_at", "modified"])
        logger.info("Order %s marked FAILED", gateway_order_id)
        return order

    def record_unapplied(
        self,
        source: str,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        error: EntitlementError,
    ) -> UnappliedPayment:
        """
        Durably note a verified capture that could not be applied.

        Must run outside the failed capture transaction. Repeat deliveries of
        the same payment bump ``attempts`` on the existing row and reopen it.
        """
        record, created = UnappliedPayment.objects.get_or_create(
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            defaults={
                "source": source,
                "gateway_signature": signature or "",
                "error_code": error.code,
                "error_detail": error.detail,
            },
        )
        if not created:
            UnappliedPayment.objects.filter(pk=record.pk).update(
                source=source,
                error_code=error.code,
                error_detail=error.detail,
                attempts=F("attempts") + 1,
                resolved_at=None,
                modified=timezone.now(),
            )
            record.refresh_from_db()
        logger.error(
            "Unapplied capture for order %s (payment=%s, attempts=%s): %s (%s)",
            gateway_order_id,
            gateway_payment_id,
            record.attempts,
            error.detail,
            error.code,
        )
        return record

    def close_unapplied(self, gateway_order_id: str) -> int:
        """Mark open unapplied captures for this order as resolved."""
        now = timezone.now()
        closed = UnappliedPayment.objects.filter(
            gateway_order_id=gateway_order_id,
            resolved_at__isnull=True,
        ).update(resolved_at=now, modified=now)
        if closed:
            logger.info(
                "Closed %s unapplied capture(s) for order %s",
                closed,
                gateway_order_id,
            )
        return closed

    @staticmethod
    def _parse_amount(amount) -> Decimal:
        try:
            value = Decimal(str(amount)).quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise InvalidOrderRequest("Amount must be a number.") from exc
        if not value.is_finite() or value <= 0:
            raise InvalidOrderRequest("Amount must be a positive number.")
        return value

    @staticmethod
    def _check_currency(currency) -> str:
        expected = price_currency()
        value = str(currency or expected).strip().upper()
        if value != expected:
            raise InvalidOrderRequest(
                f"Currency {value} is not supported; prices are in {expected}.",
            )
        return value
