"""
Entitlement API endpoints.

Views in this module:
- MyEntitlementsView: the caller's subscriptions, webinar grants and access
- AccessCheckView: evaluate one capability for the caller
- GrantAccessView: staff-only administrative grant
- FreeTrialView: start the caller's one-time free trial
"""

from __future__ import annotations

import logging

from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import OpenApiResponse
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from dripaccess.entitlements.access import AccessGate
from dripaccess.entitlements.access import RequiredCapability
from dripaccess.entitlements.grants import grant_access
from dripaccess.entitlements.grants import start_free_trial
from dripaccess.entitlements.serializers import AccessQuerySerializer
from dripaccess.entitlements.serializers import GrantAccessSerializer
from dripaccess.entitlements.serializers import SubscriptionSerializer
from dripaccess.entitlements.serializers import WebinarGrantSerializer
from dripaccess.entitlements.store import EntitlementStore
from dripaccess.payments.exceptions import AlreadyEntitled
from dripaccess.payments.exceptions import FreeTrialUnavailable
from dripaccess.payments.exceptions import InvalidPlanType
from dripaccess.payments.exceptions import UserNotFound

logger = logging.getLogger(__name__)


class MyEntitlementsView(APIView):
    """
    The caller's entitlements.

    Right after checkout the webhook may not have landed yet; clients poll
    this endpoint until the subscription appears.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List my entitlements",
        responses={200: SubscriptionSerializer(many=True)},
        tags=["Entitlements"],
    )
    def get(self, request):
        now = timezone.now()
        store = EntitlementStore()
        subscriptions = store.list_subscriptions(request.user.pk)
        grants = store.list_webinar_grants(request.user.pk)
        decision = AccessGate(store).evaluate(
            request.user.pk,
            RequiredCapability.any_active_subscription(),
            now=now,
        )
        return Response(
            {
                "subscriptions": SubscriptionSerializer(
                    subscriptions,
                    many=True,
                    context={"now": now},
                ).data,
                "webinars": WebinarGrantSerializer(grants, many=True).data,
                "access": decision.to_dict(),
            },
        )


class AccessCheckView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Check access to a capability",
        parameters=[
            OpenApiParameter("capability", str, description="Capability kind."),
            OpenApiParameter("webinarId", int, required=False),
        ],
        responses={200: OpenApiResponse(description="Access decision.")},
        tags=["Entitlements"],
    )
    def get(self, request):
        serializer = AccessQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        capability = RequiredCapability.from_kind(
            data["capability"],
            webinar_id=data.get("webinar_id"),
        )
        decision = AccessGate().evaluate(request.user.pk, capability)
        return Response(decision.to_dict())


class GrantAccessView(APIView):
    """Grant a plan to a user by email without a payment. Staff only."""

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Grant a plan",
        request=GrantAccessSerializer,
        responses={
            201: SubscriptionSerializer,
            404: OpenApiResponse(description="User not found."),
            409: OpenApiResponse(description="User already has this plan."),
        },
        tags=["Entitlements"],
    )
    def post(self, request):
        serializer = GrantAccessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            subscription = grant_access(
                data["email"],
                data["plan_type"],
                granted_by=request.user,
            )
        except UserNotFound as exc:
            return Response(
                {"error": "User not found", "code": exc.code},
                status=status.HTTP_404_NOT_FOUND,
            )
        except AlreadyEntitled as exc:
            return Response(
                {"error": exc.detail, "code": exc.code},
                status=status.HTTP_409_CONFLICT,
            )
        except InvalidPlanType as exc:
            return Response(
                {"error": exc.detail, "code": exc.code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            SubscriptionSerializer(subscription).data,
            status=status.HTTP_201_CREATED,
        )


class FreeTrialView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Start my free trial",
        request=None,
        responses={
            201: SubscriptionSerializer,
            409: OpenApiResponse(description="Free trial already used."),
        },
        tags=["Entitlements"],
    )
    def post(self, request):
        try:
            subscription = start_free_trial(request.user)
        except FreeTrialUnavailable as exc:
            return Response(
                {"error": exc.detail, "code": exc.code},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(
            SubscriptionSerializer(subscription).data,
            status=status.HTTP_201_CREATED,
        )
