"""Admin registration for the transaction ledger."""

from django.contrib import admin

from apps.web.payments.models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Ledger rows are written by the payment services only."""

    list_display = [
        "pk",
        "order",
        "gateway",
        "gateway_order_id",
        "status",
        "amount",
        "payment_method",
        "created_at",
    ]
    list_filter = ["gateway", "status", "payment_method"]
    search_fields = ["gateway_order_id", "gateway_payment_id", "gateway_refund_id"]
    readonly_fields = [f.name for f in Transaction._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
