from django.apps import AppConfig


class EntitlementsConfig(AppConfig):
    """
    Django app configuration for the entitlements app.

    Resolves captured orders into subscriptions and webinar grants and
    answers access questions for protected pages.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "dripaccess.entitlements"
