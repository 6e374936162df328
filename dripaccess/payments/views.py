"""
Payment API endpoints.

Views in this module:
- CreateOrderView: create a gateway order for checkout
- VerifyPaymentView: client-side confirmation after the gateway redirect
- PaymentWebhookView: gateway webhook receiver
- PaymentHistoryView: the caller's captured payments
"""

from __future__ import annotations

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from dripaccess.payments.constants import WEBHOOK_SIGNATURE_HEADER
from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.exceptions import EntitlementError
from dripaccess.payments.exceptions import GatewayUnavailable
from dripaccess.payments.exceptions import InvalidOrderRequest
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import TransactionConflict
from dripaccess.payments.exceptions import UnknownWebinar
from dripaccess.payments.exceptions import VerificationFailed
from dripaccess.payments.intake import PaymentEventIntake
from dripaccess.payments.ledger import OrderLedger
from dripaccess.payments.models import Order
from dripaccess.payments.serializers import CreateOrderSerializer
from dripaccess.payments.serializers import OrderSerializer
from dripaccess.payments.serializers import PaymentHistorySerializer
from dripaccess.payments.serializers import VerifyPaymentSerializer

logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Payment received and is being processed."


class CreateOrderView(APIView):
    """Create a gateway order the browser can open checkout against."""

    permission_classes = [IsAuthenticated]
    ledger_class = OrderLedger

    @extend_schema(
        summary="Create a payment order",
        request=CreateOrderSerializer,
        responses={
            201: OrderSerializer,
            400: OpenApiResponse(description="Invalid amount, plan or webinar."),
            401: OpenApiResponse(description="Authentication required."),
            500: OpenApiResponse(description="Gateway unavailable; retry later."),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self.ledger_class().create_order(
                user=request.user,
                amount=data["amount"],
                currency=settings.PAYMENT_DEFAULT_CURRENCY,
                plan_type=data["plan_type"],
                webinar_id=data.get("webinar_id"),
            )
        except (InvalidOrderRequest, InvalidPlanType, UnknownWebinar) as exc:
            return Response(
                {"error": exc.detail, "code": exc.code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except GatewayUnavailable as exc:
            logger.exception("Order creation failed for user=%s", request.user.pk)
            return Response(
                {"error": exc.detail, "code": exc.code, "retryable": True},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(
            {
                "gatewayKey": settings.PAYMENT_GATEWAY_PUBLIC_KEY,
                "order": OrderSerializer(order).data,
            },
            status=status.HTTP_201_CREATED,
        )


class VerifyPaymentView(APIView):
    """
    Confirm a payment from the checkout redirect.

    The checkout signature is the credential here, so the endpoint is open.
    Any failure after the signature checks out is reported to the user as
    "being processed"; the webhook delivers the same capture independently.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    intake_class = PaymentEventIntake

    @extend_schema(
        summary="Verify a checkout payment",
        request=VerifyPaymentSerializer,
        responses={
            200: OpenApiResponse(description="Payment verified."),
            202: OpenApiResponse(description="Payment is being processed."),
            400: OpenApiResponse(description="Invalid signature."),
            503: OpenApiResponse(description="Transient conflict; retry."),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid signature"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data

        try:
            result = self.intake_class().confirm_client_payment(
                gateway_order_id=data["gateway_order_id"],
                gateway_payment_id=data["gateway_payment_id"],
                signature=data["signature"],
            )
        except VerificationFailed:
            return Response(
                {"error": "Invalid signature"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except TransactionConflict:
            return Response(
                {"error": PROCESSING_MESSAGE, "retryable": True},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        except EntitlementError as exc:
            logger.error(  # noqa: TRY400
                "Verified payment for order %s could not be applied: %s (%s)",
                data["gateway_order_id"],
                exc.detail,
                exc.code,
            )
            return Response(
                {"success": False, "processing": True, "message": PROCESSING_MESSAGE},
                status=status.HTTP_202_ACCEPTED,
            )

        return Response(
            {"success": True, "duplicate": result.duplicate},
            status=status.HTTP_200_OK,
        )


class PaymentWebhookView(APIView):
    """
    Gateway webhook receiver.

    Returns 401 only when the signature fails. Everything after verification
    is acknowledged with 200 so the gateway does not retry forever; failures
    are logged at ERROR for operators. A transient conflict returns 503 so the
    gateway's own retry applies the event later.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    intake_class = PaymentEventIntake

    @extend_schema(exclude=True)
    def post(self, request):
        signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)
        try:
            result = self.intake_class().process_webhook(request.body, signature)
        except VerificationFailed:
            return Response(
                {"error": "Invalid signature"},
                status=status.HTTP_401_UNAUTHORIZED,
            )
        except TransactionConflict:
            return Response(
                {"received": False, "retryable": True},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        except EntitlementError as exc:
            logger.error(  # noqa: TRY400
                "Webhook processing failed: %s (%s)",
                exc.detail,
                exc.code,
            )
            return Response({"received": True}, status=status.HTTP_200_OK)

        logger.info(
            "Webhook %s processed for order %s (duplicate=%s, ignored=%s)",
            result.event,
            result.gateway_order_id,
            result.duplicate,
            result.ignored,
        )
        return Response({"received": True}, status=status.HTTP_200_OK)


class PaymentHistoryView(ListAPIView):
    """The caller's captured payments, newest first."""

    permission_classes = [IsAuthenticated]
    serializer_class = PaymentHistorySerializer
    pagination_class = None

    def get_queryset(self):
        return (
            Order.objects.filter(user=self.request.user, status=OrderStatus.CAPTURED)
            .select_related("webinar")
            .order_by("-captured_at")
        )

    @extend_schema(summary="List my payments", tags=["Payments"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
