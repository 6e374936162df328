from collections.abc import Sequence
from typing import Any

import factory
from factory import Faker
from factory import post_generation
from factory.django import DjangoModelFactory

from dripaccess.users.models import User


class UserFactory(DjangoModelFactory[User]):
    class Meta:
        model = User
        django_get_or_create = ["username"]
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"viewer-{n}")
    email = factory.Sequence(lambda n: f"viewer-{n}@example.com")
    name = Faker("name")
    is_active = True

    @post_generation
    def password(self, create: bool, extracted: Sequence[Any], **kwargs):  # noqa: FBT001
        self.set_password(extracted or "correct-horse-battery")
        if create:
            self.save(update_fields=["password"])


class SubscriberFactory(UserFactory):
    """A user who has already completed a plan purchase."""

    account_active = True
    has_purchased_plan = True
