from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account_name", models.CharField(help_text="e.g. 'Main Operating Account'", max_length=255)),
                ("account_number_mask", models.CharField(blank=True, help_text="e.g. '****5678'", max_length=16)),
                ("bank_name", models.CharField(blank=True, max_length=255)),
                ("currency", models.CharField(default="IRR", max_length=3)),
                ("is_active", models.BooleanField(default=True)),
                ("last_reconciliation_date", models.DateField(blank=True, null=True)),
                (
                    "reconciliation_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("in_progress", "In progress"), ("completed", "Completed")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["account_name", "id"],
            },
        ),
        migrations.CreateModel(
            name="LedgerDocument",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("receivable", "Receivable (invoice)"), ("payable", "Payable (bill)")],
                        db_index=True,
                        max_length=12,
                    ),
                ),
                ("document_number", models.CharField(max_length=50, unique=True)),
                ("counterparty_name", models.CharField(max_length=255)),
                ("counterparty_email", models.EmailField(blank=True, max_length=255)),
                ("counterparty_phone", models.CharField(blank=True, max_length=50)),
                (
                    "order_reference",
                    models.CharField(
                        blank=True,
                        help_text="Storefront order number this invoice was raised for, if any.",
                        max_length=64,
                    ),
                ),
                ("document_date", models.DateField()),
                ("due_date", models.DateField()),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("shipping_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("balance_amount", models.DecimalField(decimal_places=2, max_digits=15)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("sent", "Sent"),
                            ("received", "Received"),
                            ("partial", "Partially paid"),
                            ("paid", "Paid"),
                            ("overdue", "Overdue"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=10,
                    ),
                ),
                ("payment_terms", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-document_date", "-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["kind", "status"], name="ledger_doc_kind_status_idx"),
                    models.Index(fields=["due_date"], name="ledger_doc_due_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("balance_amount__gte", 0)),
                        name="ledger_document_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", 0)),
                        name="ledger_document_paid_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LineItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                ("description", models.CharField(max_length=512)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=12)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=15)),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Percentage, e.g. 9.00 for 9%",
                        max_digits=5,
                    ),
                ),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=15)),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="ledger.ledgerdocument",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_number", models.CharField(max_length=50, unique=True)),
                ("date", models.DateField()),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("bank_transfer", "Bank transfer"),
                            ("check", "Check"),
                            ("credit_card", "Credit card"),
                        ],
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("reference", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                ("idempotency_key", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="ledger.ledgerdocument",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="ledger_payment_amount_positive",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("idempotency_key__isnull", False)),
                        fields=("document", "idempotency_key"),
                        name="ledger_payment_idempotency_key_per_document",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(db_index=True)),
                ("description", models.CharField(max_length=512)),
                (
                    "debit",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Money in", max_digits=15),
                ),
                (
                    "credit",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="Money out", max_digits=15),
                ),
                ("running_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("deposit", "Deposit"),
                            ("withdrawal", "Withdrawal"),
                            ("fee", "Bank fee"),
                            ("interest", "Interest"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=12,
                    ),
                ),
                ("matched", models.BooleanField(default=False)),
                ("reconciled", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "bank_account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bank_transactions",
                        to="ledger.bankaccount",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit__gt", 0), ("credit", 0)),
                            models.Q(("debit", 0), ("credit__gt", 0)),
                            _connector="OR",
                        ),
                        name="ledger_bank_txn_one_sided",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="GLTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(db_index=True)),
                ("description", models.CharField(max_length=512)),
                ("debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("reference", models.CharField(blank=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("cleared", "Cleared"), ("outstanding", "Outstanding"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="outstanding",
                        max_length=12,
                    ),
                ),
                ("matched", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "bank_account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="gl_transactions",
                        to="ledger.bankaccount",
                    ),
                ),
                (
                    "matched_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="ledger.banktransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="ledger_gl_txn_non_negative",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="banktransaction",
            name="matched_to",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="ledger.gltransaction",
            ),
        ),
        migrations.CreateModel(
            name="Reconciliation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("statement_date", models.DateField()),
                ("statement_balance", models.DecimalField(decimal_places=2, max_digits=15)),
                ("gl_balance", models.DecimalField(decimal_places=2, max_digits=15)),
                ("reconciled_balance", models.DecimalField(decimal_places=2, max_digits=15)),
                ("outstanding_deposits", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("outstanding_checks", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("bank_fees", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("interest_earned", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                ("variance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=15)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "bank_account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reconciliations",
                        to="ledger.bankaccount",
                    ),
                ),
            ],
            options={
                "ordering": ["-statement_date", "-id"],
            },
        ),
    ]
