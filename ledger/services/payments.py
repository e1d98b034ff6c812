from __future__ import annotations

import logging
import datetime
from typing import Optional

from django.db import transaction

from ..exceptions import ConflictError, StateError, ValidationError
from ..models import LedgerDocument, Payment
from ..utils import MONEY_QUANT, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_PREFIXES = {
    LedgerDocument.Kind.RECEIVABLE: "AR-PAY",
    LedgerDocument.Kind.PAYABLE: "AP-PAY",
}


class PaymentApplier:
    """
    Applies payments to invoices and bills.

    The document row is locked for the whole operation and ``paid_amount`` is
    re-derived from the stored payments, so concurrent payments against the
    same document are serialized and ``paid + balance == total`` always holds.
    """

    def __init__(self, repository, clock):
        self.repository = repository
        self.clock = clock

    def apply_payment(
        self,
        document: LedgerDocument,
        amount,
        method: str,
        date: datetime.date,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> tuple[LedgerDocument, Payment]:
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValidationError("amount must be > 0.", details={"field": "amount", "amount": str(amount)})
        if amount != amount.quantize(MONEY_QUANT):
            raise ValidationError(
                "amount cannot have more than two decimal places.",
                details={"field": "amount", "amount": str(amount)},
            )
        if method not in Payment.Method.values:
            raise ValidationError(f"Unknown payment method '{method}'.", details={"field": "method"})
        if date is None:
            raise ValidationError("date is required.", details={"field": "date"})

        with transaction.atomic():
            locked = self.repository.get_document_for_update(document.pk)

            if idempotency_key:
                existing = self.repository.find_payment_by_key(locked, idempotency_key)
                if existing is not None:
                    if existing.amount == amount and existing.method == method and existing.date == date:
                        return locked, existing
                    raise ConflictError(
                        "idempotency_key was already used for a different payment.",
                        details={"idempotency_key": idempotency_key, "payment_id": existing.id},
                    )

            self._check_payable(locked, amount)

            prefix = f"{PAYMENT_PREFIXES[locked.kind]}-{self.clock.today().year}-"
            payment = self.repository.add_payment(
                document=locked,
                payment_number=self.repository.next_number(Payment, "payment_number", prefix),
                date=date,
                method=method,
                amount=amount,
                reference=reference or "",
                notes=notes or "",
                idempotency_key=idempotency_key or None,
            )

            locked.paid_amount = self.repository.payments_total(locked)
            locked.balance_amount = locked.total_amount - locked.paid_amount
            locked.recalc_status(self.clock.today())
            self.repository.save_document(locked, ["paid_amount", "balance_amount", "status"])

        logger.info(
            "ledger.payment_applied",
            extra={
                "document_id": locked.id,
                "payment_id": payment.id,
                "amount": str(amount),
                "balance_amount": str(locked.balance_amount),
                "status": locked.status,
            },
        )
        return locked, payment

    def _check_payable(self, document: LedgerDocument, amount) -> None:
        if document.status == LedgerDocument.Status.CANCELLED:
            self._reject(document, amount, "cancelled")
            raise StateError(
                "Cannot apply a payment to a cancelled document.",
                details={"document_id": document.id, "status": document.status},
            )
        if document.status == LedgerDocument.Status.DRAFT:
            self._reject(document, amount, "draft")
            raise StateError(
                "Issue the document before applying payments.",
                details={"document_id": document.id, "status": document.status},
            )
        if amount > document.balance_amount:
            self._reject(document, amount, "exceeds_balance")
            raise ValidationError(
                "Payment amount exceeds the outstanding balance.",
                details={
                    "document_id": document.id,
                    "amount": str(amount),
                    "balance_amount": str(document.balance_amount),
                },
            )

    @staticmethod
    def _reject(document: LedgerDocument, amount, reason: str) -> None:
        logger.warning(
            "ledger.payment_rejected",
            extra={"document_id": document.id, "amount": str(amount), "reason": reason},
        )
