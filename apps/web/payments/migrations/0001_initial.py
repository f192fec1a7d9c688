import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("restaurant", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "gateway",
                    models.CharField(
                        choices=[("razorpay", "Razorpay"), ("upigateway", "UPIGateway")],
                        max_length=20,
                    ),
                ),
                ("gateway_order_id", models.CharField(max_length=100)),
                ("gateway_payment_id", models.CharField(blank=True, max_length=100, null=True)),
                ("gateway_signature", models.CharField(blank=True, max_length=255)),
                ("gateway_refund_id", models.CharField(blank=True, max_length=100)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("authorized", "Authorized"),
                            ("captured", "Captured"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="created",
                        max_length=20,
                    ),
                ),
                ("payment_method", models.CharField(blank=True, max_length=30)),
                ("card_network", models.CharField(blank=True, max_length=30)),
                ("card_last4", models.CharField(blank=True, max_length=4)),
                ("bank", models.CharField(blank=True, max_length=50)),
                ("wallet", models.CharField(blank=True, max_length=50)),
                ("vpa", models.CharField(blank=True, help_text="Masked UPI VPA", max_length=100)),
                ("error_code", models.CharField(blank=True, max_length=100)),
                ("error_description", models.TextField(blank=True)),
                ("refund_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("refund_reason", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="restaurant.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-pk"],
                "indexes": [
                    models.Index(fields=["gateway_order_id"], name="txn_gateway_order_idx"),
                    models.Index(fields=["gateway_payment_id"], name="txn_gateway_payment_idx"),
                    models.Index(fields=["order", "status"], name="txn_order_status_idx"),
                    models.Index(fields=["status", "created_at"], name="txn_status_created_idx"),
                ],
            },
        ),
    ]
