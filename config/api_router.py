"""
Public API router.

Payment intake (order creation, checkout verification, gateway webhook) and
entitlement endpoints, mounted under /api/v1/.
"""

from django.urls import include
from django.urls import path

app_name = "api"
urlpatterns = [
    path("payments/", include("dripaccess.payments.urls")),
    path("entitlements/", include("dripaccess.entitlements.urls")),
]
