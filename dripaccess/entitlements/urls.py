from django.urls import path

from dripaccess.entitlements import views

app_name = "entitlements"

urlpatterns = [
    path("me/", views.MyEntitlementsView.as_view(), name="me"),
    path("access/", views.AccessCheckView.as_view(), name="access"),
    path("grants/", views.GrantAccessView.as_view(), name="grant"),
    path("free-trial/", views.FreeTrialView.as_view(), name="free-trial"),
]
