from __future__ import annotations

from rest_framework import serializers

from .models import (
    BankAccount,
    BankTransaction,
    GLTransaction,
    LedgerDocument,
    LineItem,
    Payment,
    Reconciliation,
)

MONEY_FIELD = {"max_digits": 15, "decimal_places": 2}


# --- read side -------------------------------------------------------------


class LineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = LineItem
        fields = [
            "id",
            "position",
            "description",
            "quantity",
            "unit_price",
            "tax_rate",
            "tax_amount",
            "line_total",
        ]


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "payment_number",
            "date",
            "method",
            "amount",
            "reference",
            "notes",
            "created_at",
        ]


class LedgerDocumentSerializer(serializers.ModelSerializer):
    line_items = LineItemSerializer(many=True, read_only=True)

    class Meta:
        model = LedgerDocument
        fields = [
            "id",
            "kind",
            "document_number",
            "counterparty_name",
            "counterparty_email",
            "counterparty_phone",
            "order_reference",
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
            "payment_terms",
            "notes",
            "line_items",
            "created_at",
            "updated_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class LedgerDocumentDetailSerializer(LedgerDocumentSerializer):
    payments = serializers.SerializerMethodField()

    class Meta(LedgerDocumentSerializer.Meta):
        fields = [*LedgerDocumentSerializer.Meta.fields, "payments"]
        read_only_fields = fields

    def get_payments(self, obj: LedgerDocument):
        payments = obj.payments.order_by("-date", "-id")
        return PaymentSerializer(payments, many=True).data


class BankAccountSerializer(serializers.ModelSerializer):
    current_balance = serializers.DecimalField(**MONEY_FIELD, read_only=True)

    class Meta:
        model = BankAccount
        fields = [
            "id",
            "account_name",
            "account_number_mask",
            "bank_name",
            "currency",
            "is_active",
            "current_balance",
            "last_reconciliation_date",
            "reconciliation_status",
        ]


class BankTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BankTransaction
        fields = [
            "id",
            "bank_account",
            "date",
            "description",
            "debit",
            "credit",
            "running_balance",
            "kind",
            "matched",
            "matched_to",
            "reconciled",
        ]


class GLTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = GLTransaction
        fields = [
            "id",
            "bank_account",
            "date",
            "description",
            "debit",
            "credit",
            "reference",
            "status",
            "matched",
            "matched_to",
        ]


class ReconciliationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Reconciliation
        fields = [
            "id",
            "bank_account",
            "statement_date",
            "statement_balance",
            "gl_balance",
            "reconciled_balance",
            "outstanding_deposits",
            "outstanding_checks",
            "bank_fees",
            "interest_earned",
            "variance",
            "status",
            "notes",
            "created_at",
            "completed_at",
        ]


class ReconciliationSnapshotSerializer(serializers.Serializer):
    bank_balance = serializers.DecimalField(**MONEY_FIELD)
    gl_balance = serializers.DecimalField(**MONEY_FIELD)
    outstanding_checks = serializers.DecimalField(**MONEY_FIELD)
    outstanding_deposits = serializers.DecimalField(**MONEY_FIELD)
    variance = serializers.DecimalField(**MONEY_FIELD)
    bank_fees = serializers.DecimalField(**MONEY_FIELD)
    interest_earned = serializers.DecimalField(**MONEY_FIELD)
    is_balanced = serializers.BooleanField()


class AgingBucketSerializer(serializers.Serializer):
    category = serializers.CharField()
    document_count = serializers.IntegerField()
    balance_amount = serializers.DecimalField(**MONEY_FIELD)
    percent_of_total_due = serializers.DecimalField(max_digits=7, decimal_places=2)


class AgingRowSerializer(serializers.Serializer):
    document_id = serializers.IntegerField()
    document_number = serializers.CharField()
    kind = serializers.CharField()
    counterparty_name = serializers.CharField()
    document_date = serializers.DateField()
    due_date = serializers.DateField()
    total_amount = serializers.DecimalField(**MONEY_FIELD)
    paid_amount = serializers.DecimalField(**MONEY_FIELD)
    balance_amount = serializers.DecimalField(**MONEY_FIELD)
    days_overdue = serializers.IntegerField()
    category = serializers.CharField()


class DocumentSummarySerializer(serializers.Serializer):
    total_invoiced = serializers.DecimalField(**MONEY_FIELD)
    total_paid = serializers.DecimalField(**MONEY_FIELD)
    total_due = serializers.DecimalField(**MONEY_FIELD)
    total_overdue = serializers.DecimalField(**MONEY_FIELD)
    document_count = serializers.IntegerField()


# --- write side ------------------------------------------------------------


class LineItemInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=512)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_price = serializers.DecimalField(**MONEY_FIELD)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=0)


class DocumentCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=LedgerDocument.Kind.choices)
    counterparty_name = serializers.CharField(max_length=255)
    counterparty_email = serializers.EmailField(required=False, allow_blank=True, default="")
    counterparty_phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    order_reference = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    document_date = serializers.DateField()
    due_date = serializers.DateField()
    line_items = LineItemInputSerializer(many=True)
    shipping_cost = serializers.DecimalField(**MONEY_FIELD, required=False, default=0)
    discount_amount = serializers.DecimalField(**MONEY_FIELD, required=False, default=0)
    payment_terms = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    draft = serializers.BooleanField(required=False, default=False)


class PaymentInputSerializer(serializers.Serializer):
    date = serializers.DateField()
    method = serializers.ChoiceField(choices=Payment.Method.choices)
    # Range checks (positive, within balance) belong to the payment service.
    amount = serializers.DecimalField(max_digits=17, decimal_places=4)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    idempotency_key = serializers.CharField(max_length=64, required=False, allow_null=True, default=None)


class CancelInputSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class MatchInputSerializer(serializers.Serializer):
    bank_transaction_id = serializers.IntegerField()
    gl_transaction_id = serializers.IntegerField()


class CommitReconciliationSerializer(serializers.Serializer):
    statement_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
