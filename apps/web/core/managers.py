"""
Custom querysets for user-owned rows.

OwnedQuerySet filters rows down to the ones a user may see.
"""

from typing import TYPE_CHECKING, TypeVar

from django.db import models

if TYPE_CHECKING:
    from .models import User

_T = TypeVar("_T", bound=models.Model)


class OwnedQuerySet(models.QuerySet[_T]):
    """
    QuerySet for models with a ``user`` foreign key.

    Usage in services:
        address = Address.objects.owned_by(user).get(pk=address_id)

    SECURITY: Always scope customer lookups with owned_by(), never raw querysets.
    """

    def owned_by(self, user: "User") -> "OwnedQuerySet[_T]":
        """Rows owned by ``user``."""
        return self.filter(user=user)

    def visible_to(self, user: "User") -> "OwnedQuerySet[_T]":
        """Admins see every row; customers see their own."""
        if user.is_admin:
            return self.all()
        return self.owned_by(user)
