from django.contrib import admin

from .models import (
    BankAccount,
    BankTransaction,
    GLTransaction,
    LedgerDocument,
    LineItem,
    Payment,
    Reconciliation,
)


admin.site.site_header = "Storefront Ledger – Back Office"
admin.site.site_title = "Storefront Ledger"


class ReadOnlyAdminMixin:
    """Payments and reconciliations are append-only; the admin only shows them."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class FrozenOnChangeMixin:
    """Amounts and status are editable when a line is keyed in, read-only once it is saved."""

    frozen_fields = ()

    def get_readonly_fields(self, request, obj=None):
        readonly = tuple(super().get_readonly_fields(request, obj))
        if obj is None:
            return readonly
        return readonly + tuple(self.frozen_fields)


class LineItemInline(admin.TabularInline):
    model = LineItem
    extra = 0
    can_delete = False
    readonly_fields = ("description", "quantity", "unit_price", "tax_rate", "tax_amount", "line_total")

    def has_add_permission(self, request, obj=None):
        return False


class PaymentInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("payment_number", "date", "method", "amount", "reference")
    readonly_fields = fields


@admin.register(LedgerDocument)
class LedgerDocumentAdmin(admin.ModelAdmin):
    list_display = (
        "document_number",
        "kind",
        "counterparty_name",
        "document_date",
        "due_date",
        "total_amount",
        "paid_amount",
        "balance_amount",
        "status",
    )
    list_filter = ("kind", "status")
    search_fields = ("document_number", "counterparty_name", "counterparty_email")
    # Amounts and status only move through the ledger services.
    readonly_fields = (
        "document_number",
        "kind",
        "document_date",
        "due_date",
        "subtotal",
        "tax_amount",
        "shipping_cost",
        "discount_amount",
        "total_amount",
        "paid_amount",
        "balance_amount",
        "status",
        "cancelled_at",
    )
    inlines = [LineItemInline, PaymentInline]

    def has_add_permission(self, request):
        # Documents are created through the ledger API.
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("payment_number", "document", "date", "method", "amount")
    list_filter = ("method",)
    search_fields = ("payment_number", "document__document_number", "reference")


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = (
        "account_name",
        "account_number_mask",
        "bank_name",
        "currency",
        "is_active",
        "last_reconciliation_date",
        "reconciliation_status",
    )
    list_filter = ("currency", "is_active", "reconciliation_status")


@admin.register(BankTransaction)
class BankTransactionAdmin(FrozenOnChangeMixin, admin.ModelAdmin):
    list_display = ("date", "bank_account", "description", "debit", "credit", "kind", "matched", "reconciled")
    list_filter = ("bank_account", "kind", "matched", "reconciled")
    search_fields = ("description",)
    readonly_fields = ("matched", "matched_to", "reconciled")
    frozen_fields = ("debit", "credit", "running_balance", "kind")


@admin.register(GLTransaction)
class GLTransactionAdmin(FrozenOnChangeMixin, admin.ModelAdmin):
    list_display = ("date", "bank_account", "reference", "description", "debit", "credit", "status", "matched")
    list_filter = ("bank_account", "status", "matched")
    search_fields = ("description", "reference")
    readonly_fields = ("matched", "matched_to")
    frozen_fields = ("debit", "credit", "status")


@admin.register(Reconciliation)
class ReconciliationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "bank_account",
        "statement_date",
        "statement_balance",
        "gl_balance",
        "variance",
        "status",
        "completed_at",
    )
    list_filter = ("bank_account", "status")
