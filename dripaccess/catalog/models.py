from django.db import models
from model_utils.models import TimeStampedModel


class Webinar(TimeStampedModel):
    """A webinar that can be sold on its own as a one-off grant."""

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Price charged for a one-off webinar purchase.",
    )
    is_paid = models.BooleanField(
        default=False,
        help_text="Paid webinars require a webinar grant to watch.",
    )
    is_published = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created"]

    def __str__(self) -> str:
        return self.title
