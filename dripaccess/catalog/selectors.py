"""Read-only catalog lookups used by the order ledger and resolver."""

from dripaccess.catalog.models import Webinar


def get_webinar(webinar_id) -> Webinar | None:
    if webinar_id in (None, ""):
        return None
    try:
        return Webinar.objects.filter(pk=int(webinar_id)).first()
    except (TypeError, ValueError):
        return None


def webinar_exists(webinar_id) -> bool:
    return get_webinar(webinar_id) is not None
