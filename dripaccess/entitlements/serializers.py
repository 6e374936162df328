from django.utils import timezone
from rest_framework import serializers

from dripaccess.entitlements.constants import CapabilityKind
from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.models import WebinarGrant
from dripaccess.entitlements.schedule import UnlockState
from dripaccess.payments.constants import SUBSCRIPTION_PLAN_TYPES
from dripaccess.payments.constants import PlanType


class SubscriptionSerializer(serializers.ModelSerializer):
    planType = serializers.CharField(source="plan_type")  # noqa: N815
    startDate = serializers.DateTimeField(source="start_date")  # noqa: N815
    endDate = serializers.DateTimeField(source="end_date")  # noqa: N815
    isActive = serializers.BooleanField(source="is_active")  # noqa: N815
    isValid = serializers.SerializerMethodField()  # noqa: N815
    unlockedContent = serializers.SerializerMethodField()  # noqa: N815
    payment = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = [
            "id",
            "planType",
            "reason",
            "startDate",
            "endDate",
            "isActive",
            "isValid",
            "unlockedContent",
            "payment",
        ]
        read_only_fields = fields

    def _now(self):
        return self.context.get("now") or timezone.now()

    def get_isValid(self, obj) -> bool:  # noqa: N802
        return obj.is_valid_at(self._now())

    def get_unlockedContent(self, obj):  # noqa: N802
        state = UnlockState.from_document(obj.unlocked_content)
        if state is None:
            return None
        return {
            "currentDay": state.current_day,
            "unlockedVideos": list(state.unlocked_videos),
            "expiryDates": {
                key: value.isoformat() for key, value in state.expiry_dates.items()
            },
        }

    def get_payment(self, obj):
        order = obj.order
        if order is None:
            return None
        return {
            "orderId": order.gateway_order_id,
            "paymentId": order.gateway_payment_id,
            "amount": str(order.amount),
            "currency": order.currency,
            "capturedAt": order.captured_at.isoformat() if order.captured_at else None,
        }


class WebinarGrantSerializer(serializers.ModelSerializer):
    webinarId = serializers.IntegerField(source="webinar_id")  # noqa: N815
    title = serializers.CharField(source="webinar.title")
    grantedAt = serializers.DateTimeField(source="created")  # noqa: N815

    class Meta:
        model = WebinarGrant
        fields = ["webinarId", "title", "grantedAt"]
        read_only_fields = fields


class AccessQuerySerializer(serializers.Serializer):
    capability = serializers.ChoiceField(
        choices=CapabilityKind.choices,
        default=CapabilityKind.ANY_ACTIVE_SUBSCRIPTION,
    )
    webinarId = serializers.IntegerField(  # noqa: N815
        source="webinar_id",
        required=False,
        allow_null=True,
    )

    def validate(self, attrs):
        if (
            attrs["capability"] == CapabilityKind.WEBINAR_GRANT
            and attrs.get("webinar_id") is None
        ):
            raise serializers.ValidationError(
                {"webinarId": "Required for the webinar_grant capability."},
            )
        return attrs


class GrantAccessSerializer(serializers.Serializer):
    email = serializers.EmailField()
    planType = serializers.ChoiceField(  # noqa: N815
        source="plan_type",
        choices=[
            (value, label)
            for value, label in PlanType.choices
            if value in SUBSCRIPTION_PLAN_TYPES
        ],
    )
