from datetime import date, timedelta
from decimal import Decimal

from ledger.clock import FixedClock
from ledger.models import BankAccount, BankTransaction, GLTransaction, LedgerDocument
from ledger.repositories import LedgerRepository
from ledger.services import LedgerService

TODAY = date(2026, 3, 15)


def make_service(today: date = TODAY) -> LedgerService:
    return LedgerService(repository=LedgerRepository(), clock=FixedClock(today))


def make_document(
    service: LedgerService,
    *,
    total="1000.00",
    kind=LedgerDocument.Kind.RECEIVABLE,
    due_in: int = 30,
    draft: bool = False,
    name: str = "Acme Retail",
    email: str = "",
) -> LedgerDocument:
    today = service.clock.today()
    due_date = today + timedelta(days=due_in)
    return service.create_document(
        kind=kind,
        counterparty_name=name,
        counterparty_email=email,
        document_date=min(today, due_date),
        due_date=due_date,
        line_items=[
            {"description": "Goods", "quantity": Decimal("1"), "unit_price": Decimal(total), "tax_rate": Decimal("0")},
        ],
        draft=draft,
    )


def make_account(name: str = "Main Operating Account") -> BankAccount:
    return BankAccount.objects.create(
        account_name=name,
        account_number_mask="****5678",
        bank_name="National Bank",
        currency="IRR",
    )


def make_bank_txn(account, *, debit="0", credit="0", kind=BankTransaction.Kind.OTHER, day=TODAY, description="Statement line"):
    return BankTransaction.objects.create(
        bank_account=account,
        date=day,
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        kind=kind,
    )


def make_gl_txn(account, *, debit="0", credit="0", status=GLTransaction.Status.OUTSTANDING, day=TODAY, reference=""):
    return GLTransaction.objects.create(
        bank_account=account,
        date=day,
        description="Ledger line",
        debit=Decimal(debit),
        credit=Decimal(credit),
        status=status,
        reference=reference,
    )
