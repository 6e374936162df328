import django.db.models.deletion
import django.utils.timezone
import model_utils.fields
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created",
                    model_utils.fields.AutoCreatedField(
                        default=django.utils.timezone.now, editable=False, verbose_name="created"
                    ),
                ),
                (
                    "modified",
                    model_utils.fields.AutoLastModifiedField(
                        default=django.utils.timezone.now, editable=False, verbose_name="modified"
                    ),
                ),
                (
                    "gateway_order_id",
                    models.CharField(help_text="Gateway order identifier (order_xxx).", max_length=64, unique=True),
                ),
                (
                    "gateway_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Gateway payment identifier (pay_xxx), set on capture.",
                        max_length=64,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "gateway_signature",
                    models.CharField(
                        blank=True,
                        help_text="Signature that accompanied the capture confirmation.",
                        max_length=255,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(decimal_places=2, help_text="Amount in major currency units.", max_digits=10),
                ),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "plan_type",
                    models.CharField(
                        choices=[
                            ("FOUR_DAY", "Four-day plan"),
                            ("SIX_MONTH", "Six-month plan"),
                            ("PAID_WEBINAR", "Paid webinar"),
                        ],
                        max_length=20,
                    ),
                ),
                ("receipt", models.CharField(blank=True, max_length=40)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("CAPTURED", "Captured"), ("FAILED", "Failed")],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("captured_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "webinar",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="catalog.webinar",
                    ),
                ),
            ],
            options={
                "ordering": ["-created"],
                "indexes": [models.Index(fields=["user", "status"], name="order_user_status_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="order_amount_positive"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("plan_type", "PAID_WEBINAR"), _negated=True), ("webinar__isnull", False), _connector="OR"),
                        name="order_paid_webinar_has_webinar",
                    ),
                ],
            },
        ),
    ]
