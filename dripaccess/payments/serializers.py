from rest_framework import serializers

from dripaccess.payments.constants import PlanType
from dripaccess.payments.models import Order


class CreateOrderSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    planType = serializers.CharField(source="plan_type")  # noqa: N815
    webinarId = serializers.IntegerField(  # noqa: N815
        source="webinar_id",
        required=False,
        allow_null=True,
    )


class VerifyPaymentSerializer(serializers.Serializer):
    gatewayPaymentId = serializers.CharField(  # noqa: N815
        source="gateway_payment_id",
        allow_blank=True,
    )
    gatewayOrderId = serializers.CharField(  # noqa: N815
        source="gateway_order_id",
        allow_blank=True,
    )
    signature = serializers.CharField(allow_blank=True)
    planType = serializers.ChoiceField(  # noqa: N815
        source="plan_type",
        choices=PlanType.choices,
        required=False,
    )
    webinarId = serializers.IntegerField(  # noqa: N815
        source="webinar_id",
        required=False,
        allow_null=True,
    )


class OrderSerializer(serializers.ModelSerializer):
    id = serializers.CharField(source="gateway_order_id", read_only=True)
    amountMinor = serializers.IntegerField(  # noqa: N815
        source="amount_minor",
        read_only=True,
    )
    planType = serializers.CharField(source="plan_type", read_only=True)  # noqa: N815
    webinarId = serializers.IntegerField(  # noqa: N815
        source="webinar_id",
        read_only=True,
        allow_null=True,
    )

    class Meta:
        model = Order
        fields = [
            "id",
            "amount",
            "amountMinor",
            "currency",
            "receipt",
            "status",
            "planType",
            "webinarId",
        ]
        read_only_fields = fields


class PaymentHistorySerializer(serializers.ModelSerializer):
    gatewayOrderId = serializers.CharField(source="gateway_order_id")  # noqa: N815
    gatewayPaymentId = serializers.CharField(source="gateway_payment_id")  # noqa: N815
    planType = serializers.CharField(source="plan_type")  # noqa: N815
    capturedAt = serializers.DateTimeField(source="captured_at")  # noqa: N815
    webinar = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "gatewayOrderId",
            "gatewayPaymentId",
            "amount",
            "currency",
            "planType",
            "status",
            "capturedAt",
            "webinar",
        ]
        read_only_fields = fields

    def get_webinar(self, obj):
        if obj.webinar_id is None:
            return None
        return {"id": obj.webinar_id, "title": obj.webinar.title}
