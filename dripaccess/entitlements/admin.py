"""
Django admin configuration for entitlements.

Provides admin interfaces for:
- Subscription: view plans, deactivate them in bulk
- WebinarGrant: view webinar purchases
"""

from django.contrib import admin
from django.utils import timezone

from dripaccess.entitlements.models import Subscription
from dripaccess.entitlements.models import WebinarGrant
from dripaccess.entitlements.store import EntitlementStore


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        "user",
        "plan_type",
        "reason",
        "is_active",
        "start_date",
        "end_date",
    ]
    list_filter = ["plan_type", "reason", "is_active"]
    search_fields = ["user__email", "order__gateway_order_id"]
    raw_id_fields = ["user", "order", "granted_by"]
    readonly_fields = [
        "order",
        "reason",
        "granted_by",
        "start_date",
        "end_date",
        "unlocked_content",
        "deactivated_at",
        "created",
        "modified",
    ]
    actions = ["deactivate_selected"]

    @admin.action(description="Deactivate selected subscriptions")
    def deactivate_selected(self, request, queryset):
        store = EntitlementStore()
        now = timezone.now()
        count = sum(
            store.deactivate(pk, now=now)
            for pk in queryset.filter(is_active=True).values_list("pk", flat=True)
        )
        self.message_user(request, f"Deactivated {count} subscription(s).")


@admin.register(WebinarGrant)
class WebinarGrantAdmin(admin.ModelAdmin):
    list_display = ["user", "webinar", "order", "is_active", "created"]
    list_filter = ["is_active"]
    search_fields = ["user__email", "webinar__title", "order__gateway_order_id"]
    raw_id_fields = ["user", "webinar", "order"]
    readonly_fields = ["order", "created", "modified"]
