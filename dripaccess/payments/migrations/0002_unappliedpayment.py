import django.utils.timezone
import model_utils.fields
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="UnappliedPayment",
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
                    "source",
                    models.CharField(
                        help_text="Event that carried the capture (payment.captured, ...).", max_length=40
                    ),
                ),
                ("gateway_order_id", models.CharField(db_index=True, max_length=64)),
                ("gateway_payment_id", models.CharField(max_length=64)),
                ("gateway_signature", models.CharField(blank=True, max_length=255)),
                ("error_code", models.CharField(max_length=64)),
                ("error_detail", models.TextField(blank=True)),
                ("attempts", models.PositiveIntegerField(default=1)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("gateway_order_id", "gateway_payment_id"), name="unapplied_payment_unique"
                    )
                ],
            },
        ),
    ]
