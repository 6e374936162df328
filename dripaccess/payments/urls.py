from django.urls import path

from dripaccess.payments import views

app_name = "payments"

urlpatterns = [
    path("orders/", views.CreateOrderView.as_view(), name="create-order"),
    path("verify/", views.VerifyPaymentView.as_view(), name="verify"),
    path("webhook/", views.PaymentWebhookView.as_view(), name="webhook"),
    path("mine/", views.PaymentHistoryView.as_view(), name="mine"),
]
