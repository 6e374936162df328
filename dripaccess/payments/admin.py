"""
Django admin configuration for payment orders.

Orders are written by the ledger only; the admin is read-only apart from
search and filtering. Unapplied captures are replayed with
``manage.py replay_unapplied_payments``.
"""

from django.contrib import admin

from dripaccess.payments.models import Order
from dripaccess.payments.models import UnappliedPayment


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Read-only view of the order ledger."""

    list_display = [
        "gateway_order_id",
        "user",
        "plan_type",
        "amount",
        "currency",
        "status",
        "created",
        "captured_at",
    ]
    list_filter = ["status", "plan_type"]
    search_fields = [
        "gateway_order_id",
        "gateway_payment_id",
        "user__email",
        "receipt",
    ]
    raw_id_fields = ["user", "webinar"]
    date_hierarchy = "created"

    fieldsets = [
        (None, {"fields": ["user", "plan_type", "webinar", "amount", "currency"]}),
        (
            "Gateway",
            {
                "fields": [
                    "gateway_order_id",
                    "gateway_payment_id",
                    "gateway_signature",
                    "receipt",
                ],
            },
        ),
        ("Status", {"fields": ["status", "captured_at", "failed_at"]}),
        ("Timestamps", {"fields": ["created", "modified"]}),
    ]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]  # noqa: SLF001

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UnappliedPayment)
class UnappliedPaymentAdmin(admin.ModelAdmin):
    """Verified captures whose entitlement could not be applied."""

    list_display = [
        "gateway_order_id",
        "gateway_payment_id",
        "source",
        "error_code",
        "attempts",
        "created",
        "resolved_at",
    ]
    list_filter = ["error_code", "source"]
    search_fields = ["gateway_order_id", "gateway_payment_id"]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]  # noqa: SLF001

    def has_add_permission(self, request):
        return False

