import pytest

from dripaccess.catalog.selectors import get_webinar
from dripaccess.catalog.selectors import webinar_exists
from dripaccess.catalog.tests.factories import WebinarFactory

pytestmark = pytest.mark.django_db


def test_webinar_exists_accepts_string_ids():
    webinar = WebinarFactory()

    assert webinar_exists(webinar.pk)
    assert webinar_exists(str(webinar.pk))


@pytest.mark.parametrize("value", [None, "", "not-a-number", 424242])
def test_webinar_lookup_rejects_unknown_values(value):
    assert get_webinar(value) is None
    assert webinar_exists(value) is False
