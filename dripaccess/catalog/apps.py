from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """
    Minimal content catalog.

    Only the fields the entitlement engine reads are modelled here; webinar
    scheduling, media and presentation live in the CMS.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "dripaccess.catalog"
