from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """
    Django app configuration for the payments app.

    Owns the order ledger, gateway signature verification and the two
    payment intake endpoints (client verify and gateway webhook).
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "dripaccess.payments"
