from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction

from ..exceptions import ConflictError, ValidationError
from ..models import BankAccount, BankTransaction, GLTransaction, Reconciliation
from ..utils import ZERO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationSnapshot:
    bank_balance: Decimal
    gl_balance: Decimal
    outstanding_checks: Decimal
    outstanding_deposits: Decimal
    variance: Decimal
    bank_fees: Decimal
    interest_earned: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.variance == 0

    def as_dict(self) -> dict:
        data = asdict(self)
        data["is_balanced"] = self.is_balanced
        return data


def compute_snapshot(
    bank_transactions: Iterable[BankTransaction],
    gl_transactions: Iterable[GLTransaction],
) -> ReconciliationSnapshot:
    """
    Balances of one bank account as seen by the bank and by the books.

    variance = bank_balance - (gl_balance - outstanding_checks + outstanding_deposits)
    """
    bank_balance = ZERO
    bank_fees = ZERO
    interest_earned = ZERO
    for txn in bank_transactions:
        bank_balance += txn.debit - txn.credit
        if txn.kind == BankTransaction.Kind.FEE:
            bank_fees += txn.credit
        elif txn.kind == BankTransaction.Kind.INTEREST:
            interest_earned += txn.debit

    gl_balance = ZERO
    outstanding_checks = ZERO
    outstanding_deposits = ZERO
    for txn in gl_transactions:
        gl_balance += txn.debit - txn.credit
        if txn.status == GLTransaction.Status.OUTSTANDING:
            if txn.credit > 0:
                outstanding_checks += txn.credit
            if txn.debit > 0:
                outstanding_deposits += txn.debit

    variance = bank_balance - (gl_balance - outstanding_checks + outstanding_deposits)
    return ReconciliationSnapshot(
        bank_balance=bank_balance,
        gl_balance=gl_balance,
        outstanding_checks=outstanding_checks,
        outstanding_deposits=outstanding_deposits,
        variance=variance,
        bank_fees=bank_fees,
        interest_earned=interest_earned,
    )


class ReconciliationSession:
    """
    Reconciliation of a single bank account.

    ``snapshot`` is a read-only preview. ``commit`` locks the account,
    recomputes the snapshot under the lock and closes only at zero variance.
    """

    def __init__(self, bank_account: BankAccount, *, repository, clock):
        self.bank_account = bank_account
        self.repository = repository
        self.clock = clock

    def snapshot(self) -> ReconciliationSnapshot:
        return compute_snapshot(
            self.repository.bank_transactions(self.bank_account),
            self.repository.gl_transactions(self.bank_account),
        )

    def commit(self, statement_date: date, notes: Optional[str] = None) -> Reconciliation:
        if statement_date is None:
            raise ValidationError("statement_date is required.", details={"field": "statement_date"})

        with transaction.atomic():
            account = self.repository.lock_bank_account(self.bank_account.pk)
            self.bank_account = account
            snap = self.snapshot()
            if not snap.is_balanced:
                logger.warning(
                    "ledger.reconciliation_rejected",
                    extra={"account_id": account.id, "variance": str(snap.variance)},
                )
                raise ConflictError(
                    "Reconciliation cannot be completed while variance is not zero.",
                    details={"account_id": account.id, "variance": str(snap.variance)},
                )

            now = self.clock.now()
            reconciliation = self.repository.create_reconciliation(
                bank_account=account,
                statement_date=statement_date,
                statement_balance=snap.bank_balance,
                gl_balance=snap.gl_balance,
                reconciled_balance=snap.bank_balance,
                outstanding_deposits=snap.outstanding_deposits,
                outstanding_checks=snap.outstanding_checks,
                bank_fees=snap.bank_fees,
                interest_earned=snap.interest_earned,
                variance=snap.variance,
                status=Reconciliation.Status.COMPLETED,
                notes=notes or "",
                created_at=now,
                completed_at=now,
            )
            account.last_reconciliation_date = self.clock.today()
            account.reconciliation_status = BankAccount.ReconciliationStatus.COMPLETED
            self.repository.save_bank_account(
                account, ["last_reconciliation_date", "reconciliation_status"]
            )

        logger.info(
            "ledger.reconciliation_committed",
            extra={
                "account_id": account.id,
                "reconciliation_id": reconciliation.id,
                "statement_date": statement_date.isoformat(),
                "reconciled_balance": str(snap.bank_balance),
            },
        )
        return reconciliation
