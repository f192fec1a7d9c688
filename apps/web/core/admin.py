"""Admin registrations for core models."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Address, User


class AddressInline(admin.TabularInline):  # type: ignore[type-arg]
    model = Address
    extra = 0
    fields = ["label", "line1", "city", "postal_code", "is_default"]


@admin.register(User)
class UserAdmin(BaseUserAdmin):  # type: ignore[type-arg]
    list_display = ["username", "email", "phone", "role", "is_staff", "is_active"]
    list_filter = ["is_staff", "is_active", "role"]
    search_fields = ["username", "email", "phone"]
    inlines = [AddressInline]
    fieldsets = (
        *BaseUserAdmin.fieldsets,  # type: ignore[misc]
        ("Restaurant", {"fields": ("phone", "role")}),
    )
    add_fieldsets = (
        *BaseUserAdmin.add_fieldsets,
        ("Restaurant", {"fields": ("phone", "role")}),
    )


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["user", "label", "city", "postal_code", "is_default", "created_at"]
    list_filter = ["city", "is_default"]
    search_fields = ["user__username", "line1", "city", "postal_code"]
    readonly_fields = ["created_at", "updated_at"]
