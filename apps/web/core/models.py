"""
Core models - users, delivery addresses and the shared timestamp base.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models

from .managers import OwnedQuerySet


class TimestampedModel(models.Model):
    """Abstract base providing created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class User(AbstractUser):
    """
    Customer or restaurant admin.

    Sign-in (OTP, tokens) lives outside this service; only the role matters here.
    """

    class Role(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        ADMIN = "admin", "Admin"

    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
    )

    class Meta:
        ordering = ["username"]

    def __str__(self) -> str:
        return self.username

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN or self.is_staff


class Address(TimestampedModel):
    """
    Delivery address owned by a customer.

    Orders copy snapshot() at creation so later edits never rewrite history.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    label = models.CharField(max_length=50, blank=True, help_text="Home, Work, ...")
    line1 = models.CharField(max_length=255)
    line2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, default="India")
    landmark = models.CharField(max_length=255, blank=True)
    is_default = models.BooleanField(default=False)

    objects = OwnedQuerySet.as_manager()

    class Meta:
        ordering = ["-is_default", "-created_at"]

    def __str__(self) -> str:
        return f"{self.label or 'Address'} ({self.user})"

    def snapshot(self) -> str:
        """Render the address as the single line stored on orders."""
        text = self.line1
        if self.line2:
            text += f", {self.line2}"
        text += f", {self.city}"
        if self.state:
            text += f", {self.state}"
        if self.postal_code:
            text += f" - {self.postal_code}"
        text += f", {self.country}"
        if self.landmark:
            text += f" (Near: {self.landmark})"
        return text
