"""
Entry point used by the API layer and management commands.

``LedgerService`` wires the components to a repository and a clock. Both are
injected; by default they are resolved from ``LEDGER_REPOSITORY`` and
``LEDGER_CLOCK`` so tests and deployments can swap them without touching
the call sites.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string

from ..exceptions import ValidationError
from ..models import GLTransaction, LedgerDocument, Reconciliation
from . import aging, documents
from .bank_matching import BankMatcher, MatchResult
from .payments import PaymentApplier
from .reconciliation import ReconciliationSession, ReconciliationSnapshot


class LedgerService:
    def __init__(self, repository=None, clock=None):
        self.repository = repository or import_string(settings.LEDGER_REPOSITORY)()
        self.clock = clock or import_string(settings.LEDGER_CLOCK)()
        self.payments = PaymentApplier(self.repository, self.clock)
        self.matcher = BankMatcher(self.repository, self.clock)

    # --- documents -------------------------------------------------------

    def list_documents(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        kind: Optional[str] = None,
        counterparty: Optional[str] = None,
    ):
        return documents.list_documents(
            repository=self.repository,
            clock=self.clock,
            status=status,
            search=search,
            kind=kind,
            counterparty=counterparty,
        )

    def get_document(self, document_id) -> LedgerDocument:
        return documents.get_document(repository=self.repository, clock=self.clock, document_id=document_id)

    def create_document(self, **data) -> LedgerDocument:
        data.setdefault("today", self.clock.today())
        return documents.create_document(repository=self.repository, **data)

    def issue_document(self, document_id) -> LedgerDocument:
        return documents.issue_document(repository=self.repository, clock=self.clock, document_id=document_id)

    def cancel_document(self, document_id, reason: str = "") -> LedgerDocument:
        return documents.cancel_document(
            repository=self.repository,
            clock=self.clock,
            document_id=document_id,
            reason=reason,
        )

    def refresh_statuses(self, today: Optional[date] = None) -> int:
        return documents.refresh_statuses(repository=self.repository, today=today or self.clock.today())

    def document_summary(self, kind: Optional[str] = None) -> dict:
        self.refresh_statuses()
        return documents.document_summary(repository=self.repository, kind=kind)

    def record_payment(
        self,
        document_id,
        date: date,
        method: str,
        amount,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> LedgerDocument:
        document = self.repository.get_document(document_id)
        document, _payment = self.payments.apply_payment(
            document,
            amount,
            method,
            date,
            reference=reference,
            notes=notes,
            idempotency_key=idempotency_key,
        )
        return document

    # --- aging -----------------------------------------------------------

    def _aging_input(self, as_of_date: Optional[date], kind: Optional[str]):
        if kind and kind not in LedgerDocument.Kind.values:
            raise ValidationError(f"Unknown document kind '{kind}'.", details={"field": "kind"})
        return self.repository.open_documents(kind=kind), as_of_date or self.clock.today()

    def get_aging_report(
        self,
        as_of_date: Optional[date] = None,
        kind: Optional[str] = None,
        scheme: Optional[str] = None,
    ) -> list[aging.AgingBucket]:
        docs, as_of = self._aging_input(as_of_date, kind)
        return aging.aging_report(docs, as_of, scheme=scheme)

    def get_aging_detail(
        self,
        as_of_date: Optional[date] = None,
        kind: Optional[str] = None,
        scheme: Optional[str] = None,
    ) -> list[aging.AgingRow]:
        docs, as_of = self._aging_input(as_of_date, kind)
        return aging.classify(docs, as_of, scheme=scheme)

    # --- bank ------------------------------------------------------------

    def list_bank_accounts(self):
        return self.repository.bank_accounts()

    def get_unreconciled(self, account_id) -> dict:
        account = self.repository.get_bank_account(account_id)
        return {
            "bank": list(self.repository.bank_transactions(account).filter(reconciled=False)),
            "gl": list(
                self.repository.gl_transactions(account)
                .filter(matched=False)
                .exclude(status=GLTransaction.Status.CANCELLED)
            ),
        }

    def match_transactions(self, bank_id, gl_id) -> MatchResult:
        return self.matcher.match(bank_id, gl_id)

    def unmatch_transactions(self, bank_id, gl_id) -> MatchResult:
        return self.matcher.unmatch(bank_id, gl_id)

    # --- reconciliation --------------------------------------------------

    def _session(self, account_id) -> ReconciliationSession:
        account = self.repository.get_bank_account(account_id)
        return ReconciliationSession(account, repository=self.repository, clock=self.clock)

    def reconciliation_summary(self, account_id) -> ReconciliationSnapshot:
        return self._session(account_id).snapshot()

    def commit_reconciliation(
        self,
        account_id,
        statement_date: date,
        notes: Optional[str] = None,
    ) -> Reconciliation:
        return self._session(account_id).commit(statement_date, notes=notes)

    def list_reconciliations(self, account_id):
        account = self.repository.get_bank_account(account_id)
        return self.repository.reconciliations(account)


def get_ledger_service() -> LedgerService:
    return LedgerService()
