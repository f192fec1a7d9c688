"""
Payment ledger models.

Every gateway interaction for an order is a Transaction row. Reconciliation
updates the current row in place; refunds always add a new row.
"""

from django.db import models

from apps.web.core.models import TimestampedModel


class Gateway(models.TextChoices):
    """Payment gateways a ledger row can belong to."""

    RAZORPAY = "razorpay", "Razorpay"
    UPIGATEWAY = "upigateway", "UPIGateway"


class TransactionStatus(models.TextChoices):
    """Ledger row status."""

    CREATED = "created", "Created"
    AUTHORIZED = "authorized", "Authorized"
    CAPTURED = "captured", "Captured"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class Transaction(TimestampedModel):
    """
    One gateway interaction.

    ``metadata["events"]`` accumulates every raw payload seen for the row;
    entries are appended, never replaced.
    """

    order = models.ForeignKey(
        "restaurant.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    gateway = models.CharField(max_length=20, choices=Gateway.choices)
    gateway_order_id = models.CharField(max_length=100)
    gateway_payment_id = models.CharField(max_length=100, blank=True, null=True)
    gateway_signature = models.CharField(max_length=255, blank=True)
    gateway_refund_id = models.CharField(max_length=100, blank=True)

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")
    status = models.CharField(
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.CREATED,
    )

    # Payment instrument (masked)
    payment_method = models.CharField(max_length=30, blank=True)
    card_network = models.CharField(max_length=30, blank=True)
    card_last4 = models.CharField(max_length=4, blank=True)
    bank = models.CharField(max_length=50, blank=True)
    wallet = models.CharField(max_length=50, blank=True)
    vpa = models.CharField(max_length=100, blank=True, help_text="Masked UPI VPA")

    # Failure
    error_code = models.CharField(max_length=100, blank=True)
    error_description = models.TextField(blank=True)

    # Refund
    refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    refund_reason = models.TextField(blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-pk"]
        indexes = [
            models.Index(fields=["gateway_order_id"], name="txn_gateway_order_idx"),
            models.Index(fields=["gateway_payment_id"], name="txn_gateway_payment_idx"),
            models.Index(fields=["order", "status"], name="txn_order_status_idx"),
            models.Index(fields=["status", "created_at"], name="txn_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.gateway}:{self.gateway_order_id} ({self.status})"
