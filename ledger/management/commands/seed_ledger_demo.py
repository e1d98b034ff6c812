"""
Load the back-office demo data: two bank accounts with statement and GL lines,
plus a handful of invoices and bills.

    python manage.py seed_ledger_demo
"""
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from ledger.models import BankAccount, BankTransaction, GLTransaction, LedgerDocument
from ledger.services import get_ledger_service


ACCOUNTS = [
    {
        "account_name": "Main Operating Account",
        "account_number_mask": "****5678",
        "bank_name": "National Bank",
        "currency": "IRR",
    },
    {
        "account_name": "Savings Account",
        "account_number_mask": "****9012",
        "bank_name": "International Bank",
        "currency": "USD",
    },
]

# (days from today, description, debit, credit, kind)
BANK_LINES = [
    (-2, "Customer Deposit - INV-001", "2000000", "0", BankTransaction.Kind.DEPOSIT),
    (-1, "Wire Transfer - Vendor Payment", "0", "1500000", BankTransaction.Kind.WITHDRAWAL),
    (0, "Monthly Service Fee", "0", "50000", BankTransaction.Kind.FEE),
    (0, "Interest Credit", "150000", "0", BankTransaction.Kind.INTEREST),
    (2, "Pending Deposit - INV-003", "5450000", "0", BankTransaction.Kind.DEPOSIT),
]

# (days from today, description, debit, credit, reference)
GL_LINES = [
    (-2, "Customer Deposit - INV-001", "2000000", "0", "DEP-001"),
    (-1, "Wire Transfer - Vendor Payment", "0", "1500000", "WIRE-P001"),
    (-5, "Check #1234 - Office Supply", "0", "500000", "CHK-1234"),
    (-3, "Customer Deposit - INV-003", "5450000", "0", "DEP-003"),
]

# Statement lines 0 and 1 were already matched against GL lines 0 and 1.
MATCHED_PAIRS = [(0, 0), (1, 1)]

DOCUMENTS = [
    {
        "kind": LedgerDocument.Kind.RECEIVABLE,
        "counterparty_name": "Pars Retail Group",
        "counterparty_email": "accounts@parsretail.example",
        "days_ago": 20,
        "terms_days": 30,
        "line_items": [
            {"description": "Ceramic tableware set", "quantity": "10", "unit_price": "150000", "tax_rate": "9"},
        ],
        "shipping_cost": "50000",
    },
    {
        "kind": LedgerDocument.Kind.RECEIVABLE,
        "counterparty_name": "Caspian Home Store",
        "counterparty_email": "finance@caspianhome.example",
        "days_ago": 45,
        "terms_days": 30,
        "line_items": [
            {"description": "Handwoven rug", "quantity": "2", "unit_price": "2500000", "tax_rate": "9"},
        ],
    },
    {
        "kind": LedgerDocument.Kind.PAYABLE,
        "counterparty_name": "Zagros Packaging Supplies",
        "counterparty_email": "billing@zagrospack.example",
        "days_ago": 10,
        "terms_days": 15,
        "line_items": [
            {"description": "Shipping boxes (pack of 100)", "quantity": "5", "unit_price": "400000", "tax_rate": "0"},
        ],
    },
]


class Command(BaseCommand):
    help = "Seed demo bank accounts, bank/GL transactions and invoices/bills"

    def handle(self, *args, **options):
        service = get_ledger_service()
        today = service.clock.today()

        if BankAccount.objects.filter(account_name=ACCOUNTS[0]["account_name"]).exists():
            self.stdout.write("Demo data already present; nothing to do")
            return

        with transaction.atomic():
            accounts = [BankAccount.objects.create(**data) for data in ACCOUNTS]
            main = accounts[0]

            running = Decimal("0")
            bank_rows = []
            for offset, description, debit, credit, kind in BANK_LINES:
                debit, credit = Decimal(debit), Decimal(credit)
                running += debit - credit
                bank_rows.append(
                    BankTransaction.objects.create(
                        bank_account=main,
                        date=today + timedelta(days=offset),
                        description=description,
                        debit=debit,
                        credit=credit,
                        running_balance=running,
                        kind=kind,
                    )
                )

            gl_rows = [
                GLTransaction.objects.create(
                    bank_account=main,
                    date=today + timedelta(days=offset),
                    description=description,
                    debit=Decimal(debit),
                    credit=Decimal(credit),
                    reference=reference,
                )
                for offset, description, debit, credit, reference in GL_LINES
            ]

            for bank_ix, gl_ix in MATCHED_PAIRS:
                service.match_transactions(bank_rows[bank_ix].id, gl_rows[gl_ix].id)

            for entry in DOCUMENTS:
                document_date = today - timedelta(days=entry["days_ago"])
                service.create_document(
                    kind=entry["kind"],
                    counterparty_name=entry["counterparty_name"],
                    counterparty_email=entry["counterparty_email"],
                    document_date=document_date,
                    due_date=document_date + timedelta(days=entry["terms_days"]),
                    line_items=entry["line_items"],
                    shipping_cost=entry.get("shipping_cost", "0"),
                    payment_terms=f"Net {entry['terms_days']}",
                )
            service.refresh_statuses()

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {len(accounts)} bank accounts, {len(bank_rows)} bank lines, "
                f"{len(gl_rows)} GL lines and {len(DOCUMENTS)} documents"
            )
        )
