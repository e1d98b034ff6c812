"""
Pairing bank statement lines with GL lines.

A match flips exactly five fields (bank: matched, matched_to, reconciled;
GL: matched, matched_to plus status) and an unmatch flips the same five
back, so ``unmatch(match(b, g))`` leaves both rows as they were.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from ..exceptions import ConflictError, StateError, ValidationError
from ..models import BankAccount, BankTransaction, GLTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    bank: BankTransaction
    gl: GLTransaction


class BankMatcher:
    def __init__(self, repository, clock):
        self.repository = repository
        self.clock = clock

    def _lock_pair(self, bank_txn_id, gl_txn_id) -> tuple[BankAccount, BankTransaction, GLTransaction]:
        # Account first, then both rows; commit takes the same account lock.
        bank_txn = self.repository.get_bank_transaction(bank_txn_id)
        gl_txn = self.repository.get_gl_transaction(gl_txn_id)
        if bank_txn.bank_account_id != gl_txn.bank_account_id:
            raise ValidationError(
                "Bank and GL transactions belong to different bank accounts.",
                details={
                    "bank_transaction_id": bank_txn.id,
                    "gl_transaction_id": gl_txn.id,
                },
            )
        account = self.repository.lock_bank_account(bank_txn.bank_account_id)
        bank_txn = self.repository.get_bank_transaction(bank_txn_id, for_update=True)
        gl_txn = self.repository.get_gl_transaction(gl_txn_id, for_update=True)
        return account, bank_txn, gl_txn

    def _mark_in_progress(self, account: BankAccount) -> None:
        if account.reconciliation_status != BankAccount.ReconciliationStatus.IN_PROGRESS:
            account.reconciliation_status = BankAccount.ReconciliationStatus.IN_PROGRESS
            self.repository.save_bank_account(account, ["reconciliation_status"])

    def match(self, bank_txn_id, gl_txn_id) -> MatchResult:
        with transaction.atomic():
            account, bank_txn, gl_txn = self._lock_pair(bank_txn_id, gl_txn_id)
            details = {"bank_transaction_id": bank_txn.id, "gl_transaction_id": gl_txn.id}

            if bank_txn.matched or gl_txn.matched:
                raise ConflictError("One side of the pair is already matched.", details=details)
            if gl_txn.status != GLTransaction.Status.OUTSTANDING:
                raise StateError(
                    f"Only outstanding GL transactions can be matched (status is '{gl_txn.status}').",
                    details={**details, "status": gl_txn.status},
                )
            if bank_txn.amount != gl_txn.amount:
                raise ConflictError(
                    "Amounts differ.",
                    details={
                        **details,
                        "bank_amount": str(bank_txn.amount),
                        "gl_amount": str(gl_txn.amount),
                    },
                )

            bank_txn.matched = True
            bank_txn.matched_to = gl_txn
            bank_txn.reconciled = True
            gl_txn.matched = True
            gl_txn.matched_to = bank_txn
            gl_txn.status = GLTransaction.Status.CLEARED
            self.repository.save_match_pair(bank_txn, gl_txn)
            self._mark_in_progress(account)

        logger.info(
            "ledger.bank_match",
            extra={**details, "account_id": account.id, "amount": str(bank_txn.amount)},
        )
        return MatchResult(bank=bank_txn, gl=gl_txn)

    def unmatch(self, bank_txn_id, gl_txn_id) -> MatchResult:
        with transaction.atomic():
            account, bank_txn, gl_txn = self._lock_pair(bank_txn_id, gl_txn_id)
            details = {"bank_transaction_id": bank_txn.id, "gl_transaction_id": gl_txn.id}

            paired = (
                bank_txn.matched
                and gl_txn.matched
                and bank_txn.matched_to_id == gl_txn.id
                and gl_txn.matched_to_id == bank_txn.id
            )
            if not paired:
                raise ConflictError("These transactions are not matched to each other.", details=details)

            bank_txn.matched = False
            bank_txn.matched_to = None
            bank_txn.reconciled = False
            gl_txn.matched = False
            gl_txn.matched_to = None
            gl_txn.status = GLTransaction.Status.OUTSTANDING
            self.repository.save_match_pair(bank_txn, gl_txn)
            self._mark_in_progress(account)

        logger.info("ledger.bank_unmatch", extra={**details, "account_id": account.id})
        return MatchResult(bank=bank_txn, gl=gl_txn)
