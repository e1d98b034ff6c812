"""
Persistence collaborator for the ledger core.

Services never query the ORM directly; they go through a repository so the
storage can be swapped (or faked) without touching the bookkeeping rules.
The ``*_for_update`` helpers must be called inside ``transaction.atomic``.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from django.db.models import Q, QuerySet, Sum

from .exceptions import NotFoundError
from .models import (
    BankAccount,
    BankTransaction,
    GLTransaction,
    LedgerDocument,
    LineItem,
    NumberSequence,
    Payment,
    Reconciliation,
)
from .utils import ZERO


class LedgerRepository:
    # --- documents -------------------------------------------------------

    def documents(self) -> QuerySet[LedgerDocument]:
        return LedgerDocument.objects.all()

    def filter_documents(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        kind: Optional[str] = None,
        counterparty: Optional[str] = None,
    ) -> QuerySet[LedgerDocument]:
        qs = self.documents().prefetch_related("line_items")
        if kind:
            qs = qs.filter(kind=kind)
        if status and status != "all":
            qs = qs.filter(status=status)
        if search:
            qs = qs.filter(
                Q(document_number__icontains=search)
                | Q(counterparty_name__icontains=search)
                | Q(counterparty_email__icontains=search)
            )
        if counterparty:
            qs = qs.filter(counterparty_name__icontains=counterparty)
        return qs

    def open_documents(
        self,
        *,
        kind: Optional[str] = None,
        for_update: bool = False,
    ) -> QuerySet[LedgerDocument]:
        qs = LedgerDocument.objects.select_for_update() if for_update else self.documents()
        qs = qs.filter(balance_amount__gt=0).exclude(
            status__in=[
                LedgerDocument.Status.DRAFT,
                LedgerDocument.Status.PAID,
                LedgerDocument.Status.CANCELLED,
            ]
        )
        if kind:
            qs = qs.filter(kind=kind)
        return qs

    def get_document(self, document_id) -> LedgerDocument:
        try:
            return self.documents().get(pk=document_id)
        except (LedgerDocument.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"Document {document_id} not found.",
                details={"document_id": document_id},
            ) from exc

    def get_document_for_update(self, document_id) -> LedgerDocument:
        try:
            return LedgerDocument.objects.select_for_update().get(pk=document_id)
        except (LedgerDocument.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"Document {document_id} not found.",
                details={"document_id": document_id},
            ) from exc

    def create_document(self, *, line_items: Iterable[dict], **fields) -> LedgerDocument:
        document = LedgerDocument.objects.create(**fields)
        LineItem.objects.bulk_create(
            [LineItem(document=document, position=ix, **item) for ix, item in enumerate(line_items)]
        )
        return document

    def save_document(self, document: LedgerDocument, fields: list[str]) -> LedgerDocument:
        document.save(update_fields=[*fields, "updated_at"])
        return document

    def bulk_update_status(self, documents: list[LedgerDocument]) -> int:
        return LedgerDocument.objects.bulk_update(documents, ["status"])

    def next_number(self, model, field: str, prefix: str) -> str:
        """
        Hand out the next ``<prefix>NNNNNN`` number for ``model.field``.

        The per-prefix sequence row stays locked until the caller's
        transaction ends, so concurrent callers get distinct numbers.
        """
        sequence, _ = NumberSequence.objects.get_or_create(
            prefix=prefix,
            defaults={"last_value": self._highest_number(model, field, prefix)},
        )
        sequence = NumberSequence.objects.select_for_update().get(pk=sequence.pk)
        sequence.last_value += 1
        sequence.save(update_fields=["last_value"])
        return f"{prefix}{sequence.last_value:06d}"

    def _highest_number(self, model, field: str, prefix: str) -> int:
        last = (
            model.objects.filter(**{f"{field}__startswith": prefix})
            .order_by(f"-{field}")
            .values_list(field, flat=True)
            .first()
        )
        tail = last[len(prefix):] if last else ""
        return int(tail) if tail.isdigit() else 0

    # --- payments --------------------------------------------------------

    def find_payment_by_key(self, document: LedgerDocument, idempotency_key: str) -> Optional[Payment]:
        return Payment.objects.filter(document=document, idempotency_key=idempotency_key).first()

    def add_payment(self, **fields) -> Payment:
        return Payment.objects.create(**fields)

    def payments_total(self, document: LedgerDocument) -> Decimal:
        total = Payment.objects.filter(document=document).aggregate(total=Sum("amount"))["total"]
        return total or ZERO

    # --- bank side -------------------------------------------------------

    def bank_accounts(self, *, active_only: bool = True) -> QuerySet[BankAccount]:
        qs = BankAccount.objects.all()
        if active_only:
            qs = qs.filter(is_active=True)
        return qs

    def get_bank_account(self, account_id) -> BankAccount:
        try:
            return BankAccount.objects.get(pk=account_id)
        except (BankAccount.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"Bank account {account_id} not found.",
                details={"account_id": account_id},
            ) from exc

    def lock_bank_account(self, account_id) -> BankAccount:
        try:
            return BankAccount.objects.select_for_update().get(pk=account_id)
        except (BankAccount.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"Bank account {account_id} not found.",
                details={"account_id": account_id},
            ) from exc

    def save_bank_account(self, account: BankAccount, fields: list[str]) -> BankAccount:
        account.save(update_fields=fields)
        return account

    def bank_transactions(self, account: BankAccount) -> QuerySet[BankTransaction]:
        return BankTransaction.objects.filter(bank_account=account)

    def gl_transactions(self, account: BankAccount) -> QuerySet[GLTransaction]:
        return GLTransaction.objects.filter(bank_account=account)

    def get_bank_transaction(self, txn_id, *, for_update: bool = False) -> BankTransaction:
        qs = BankTransaction.objects.select_for_update() if for_update else BankTransaction.objects.all()
        try:
            return qs.get(pk=txn_id)
        except (BankTransaction.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"Bank transaction {txn_id} not found.",
                details={"bank_transaction_id": txn_id},
            ) from exc

    def get_gl_transaction(self, txn_id, *, for_update: bool = False) -> GLTransaction:
        qs = GLTransaction.objects.select_for_update() if for_update else GLTransaction.objects.all()
        try:
            return qs.get(pk=txn_id)
        except (GLTransaction.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError(
                f"GL transaction {txn_id} not found.",
                details={"gl_transaction_id": txn_id},
            ) from exc

    def save_match_pair(self, bank_txn: BankTransaction, gl_txn: GLTransaction) -> None:
        bank_txn.save(update_fields=["matched", "matched_to", "reconciled"])
        gl_txn.save(update_fields=["matched", "matched_to", "status"])

    # --- reconciliations -------------------------------------------------

    def create_reconciliation(self, **fields) -> Reconciliation:
        return Reconciliation.objects.create(**fields)

    def reconciliations(self, account: BankAccount) -> QuerySet[Reconciliation]:
        return Reconciliation.objects.filter(bank_account=account)

    def last_reconciliation(self, account: BankAccount) -> Optional[Reconciliation]:
        return self.reconciliations(account).first()
