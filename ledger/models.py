from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from django.db import models
from django.db.models import Q, Sum
from django.utils import timezone

from .exceptions import StateError
from .utils import ZERO

if TYPE_CHECKING:
    from django.db.models import Manager


MONEY = {"max_digits": 15, "decimal_places": 2}


class LedgerDocument(models.Model):
    """
    An invoice (money owed to us) or a bill (money we owe).

    Amounts are frozen when the document is created. Afterwards only the
    payment service touches ``paid_amount``, ``balance_amount`` and ``status``.
    """

    class Kind(models.TextChoices):
        RECEIVABLE = "receivable", "Receivable (invoice)"
        PAYABLE = "payable", "Payable (bill)"

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        RECEIVED = "received", "Received"
        PARTIAL = "partial", "Partially paid"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"
        CANCELLED = "cancelled", "Cancelled"

    TERMINAL_STATUSES = frozenset({Status.PAID, Status.CANCELLED})

    kind = models.CharField(max_length=12, choices=Kind.choices, db_index=True)
    document_number = models.CharField(max_length=50, unique=True)
    counterparty_name = models.CharField(max_length=255)
    counterparty_email = models.EmailField(max_length=255, blank=True)
    counterparty_phone = models.CharField(max_length=50, blank=True)
    order_reference = models.CharField(
        max_length=64,
        blank=True,
        help_text="Storefront order number this invoice was raised for, if any.",
    )
    document_date = models.DateField()
    due_date = models.DateField()
    subtotal = models.DecimalField(**MONEY, default=ZERO)
    tax_amount = models.DecimalField(**MONEY, default=ZERO)
    shipping_cost = models.DecimalField(**MONEY, default=ZERO)
    discount_amount = models.DecimalField(**MONEY, default=ZERO)
    total_amount = models.DecimalField(**MONEY)
    paid_amount = models.DecimalField(**MONEY, default=ZERO)
    balance_amount = models.DecimalField(**MONEY)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    payment_terms = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-document_date", "-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(balance_amount__gte=0),
                name="ledger_document_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__gte=0),
                name="ledger_document_paid_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["kind", "status"], name="ledger_doc_kind_status_idx"),
            models.Index(fields=["due_date"], name="ledger_doc_due_date_idx"),
        ]

    def __str__(self):
        return f"{self.document_number} – {self.counterparty_name}"

    @property
    def issued_status(self) -> str:
        if self.kind == self.Kind.PAYABLE:
            return self.Status.RECEIVED
        return self.Status.SENT

    @property
    def is_open(self) -> bool:
        if self.status == self.Status.DRAFT or self.status in self.TERMINAL_STATUSES:
            return False
        return self.balance_amount > 0

    def recalc_status(self, today: date) -> str:
        self.status = derive_status(
            current=self.status,
            issued=self.issued_status,
            paid=self.paid_amount,
            total=self.total_amount,
            due_date=self.due_date,
            today=today,
        )
        return self.status

    if TYPE_CHECKING:
        id: int
        line_items: Manager["LineItem"]
        payments: Manager["Payment"]


def derive_status(
    *,
    current: str,
    issued: str,
    paid: Decimal,
    total: Decimal,
    due_date: date,
    today: date,
) -> str:
    """
    The one place a document status is computed.

    Draft and cancelled documents keep their status; everything else follows
    from how much has been paid and whether the due date has passed.
    """
    Status = LedgerDocument.Status
    if current in (Status.DRAFT, Status.CANCELLED):
        return current
    balance = total - paid
    if balance <= 0:
        return Status.PAID
    if today > due_date:
        return Status.OVERDUE
    if ZERO < paid < total:
        return Status.PARTIAL
    return issued


class LineItem(models.Model):
    document = models.ForeignKey(
        LedgerDocument,
        on_delete=models.CASCADE,
        related_name="line_items",
    )
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=512)
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    unit_price = models.DecimalField(**MONEY)
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=ZERO,
        help_text="Percentage, e.g. 9.00 for 9%",
    )
    tax_amount = models.DecimalField(**MONEY, default=ZERO)
    line_total = models.DecimalField(**MONEY)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.description} x {self.quantity}"


class Payment(models.Model):
    """A payment applied to a document. Never edited after it is stored."""

    class Method(models.TextChoices):
        CASH = "cash", "Cash"
        BANK_TRANSFER = "bank_transfer", "Bank transfer"
        CHECK = "check", "Check"
        CREDIT_CARD = "credit_card", "Credit card"

    document = models.ForeignKey(
        LedgerDocument,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    payment_number = models.CharField(max_length=50, unique=True)
    date = models.DateField()
    method = models.CharField(max_length=20, choices=Method.choices)
    amount = models.DecimalField(**MONEY)
    reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    idempotency_key = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="ledger_payment_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["document", "idempotency_key"],
                condition=Q(idempotency_key__isnull=False),
                name="ledger_payment_idempotency_key_per_document",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} ({self.amount})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise StateError("Payments are immutable once recorded.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise StateError("Payments are immutable once recorded.")


class BankAccount(models.Model):
    class ReconciliationStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"

    account_name = models.CharField(max_length=255, help_text="e.g. 'Main Operating Account'")
    account_number_mask = models.CharField(max_length=16, blank=True, help_text="e.g. '****5678'")
    bank_name = models.CharField(max_length=255, blank=True)
    currency = models.CharField(max_length=3, default="IRR")
    is_active = models.BooleanField(default=True)
    last_reconciliation_date = models.DateField(null=True, blank=True)
    reconciliation_status = models.CharField(
        max_length=16,
        choices=ReconciliationStatus.choices,
        default=ReconciliationStatus.PENDING,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["account_name", "id"]

    def __str__(self):
        mask = f" {self.account_number_mask}" if self.account_number_mask else ""
        return f"{self.account_name}{mask}"

    @property
    def current_balance(self) -> Decimal:
        totals = self.bank_transactions.aggregate(debit=Sum("debit"), credit=Sum("credit"))
        return (totals["debit"] or ZERO) - (totals["credit"] or ZERO)

    if TYPE_CHECKING:
        id: int
        bank_transactions: Manager["BankTransaction"]
        gl_transactions: Manager["GLTransaction"]
        reconciliations: Manager["Reconciliation"]


class BankTransaction(models.Model):
    """A line from the bank statement (the bank's side of the story)."""

    class Kind(models.TextChoices):
        DEPOSIT = "deposit", "Deposit"
        WITHDRAWAL = "withdrawal", "Withdrawal"
        FEE = "fee", "Bank fee"
        INTEREST = "interest", "Interest"
        OTHER = "other", "Other"

    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.CASCADE,
        related_name="bank_transactions",
    )
    date = models.DateField(db_index=True)
    description = models.CharField(max_length=512)
    debit = models.DecimalField(**MONEY, default=ZERO, help_text="Money in")
    credit = models.DecimalField(**MONEY, default=ZERO, help_text="Money out")
    running_balance = models.DecimalField(**MONEY, default=ZERO)
    kind = models.CharField(max_length=12, choices=Kind.choices, default=Kind.OTHER)
    matched = models.BooleanField(default=False)
    matched_to = models.ForeignKey(
        "ledger.GLTransaction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reconciled = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=(Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0)),
                name="ledger_bank_txn_one_sided",
            ),
        ]

    def __str__(self):
        return f"{self.date} – {self.description}"

    @property
    def amount(self) -> Decimal:
        return max(self.debit, self.credit)

    if TYPE_CHECKING:
        id: int
        matched_to_id: Optional[int]


class GLTransaction(models.Model):
    """A bank-account line in our own books (the ledger's side of the story)."""

    class Status(models.TextChoices):
        CLEARED = "cleared", "Cleared"
        OUTSTANDING = "outstanding", "Outstanding"
        CANCELLED = "cancelled", "Cancelled"

    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.CASCADE,
        related_name="gl_transactions",
    )
    date = models.DateField(db_index=True)
    description = models.CharField(max_length=512)
    debit = models.DecimalField(**MONEY, default=ZERO)
    credit = models.DecimalField(**MONEY, default=ZERO)
    reference = models.CharField(max_length=64, blank=True)
    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.OUTSTANDING,
        db_index=True,
    )
    matched = models.BooleanField(default=False)
    matched_to = models.ForeignKey(
        BankTransaction,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="ledger_gl_txn_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.reference or self.date} – {self.description}"

    @property
    def amount(self) -> Decimal:
        return max(self.debit, self.credit)

    if TYPE_CHECKING:
        id: int
        matched_to_id: Optional[int]


class Reconciliation(models.Model):
    """Closing record of a bank account. Written once, at a zero-variance close."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        REJECTED = "rejected", "Rejected"

    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        related_name="reconciliations",
    )
    statement_date = models.DateField()
    statement_balance = models.DecimalField(**MONEY)
    gl_balance = models.DecimalField(**MONEY)
    reconciled_balance = models.DecimalField(**MONEY)
    outstanding_deposits = models.DecimalField(**MONEY, default=ZERO)
    outstanding_checks = models.DecimalField(**MONEY, default=ZERO)
    bank_fees = models.DecimalField(**MONEY, default=ZERO)
    interest_earned = models.DecimalField(**MONEY, default=ZERO)
    variance = models.DecimalField(**MONEY, default=ZERO)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-statement_date", "-id"]

    def __str__(self):
        return f"{self.bank_account.account_name} @ {self.statement_date}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise StateError("Reconciliation records cannot be changed once committed.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise StateError("Reconciliation records cannot be deleted.")


class NumberSequence(models.Model):
    """Last number handed out per prefix, e.g. ``AR-PAY-2026-``. Locked while incremented."""

    prefix = models.CharField(max_length=32, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.prefix}{self.last_value:06d}"
