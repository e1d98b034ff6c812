from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Q, Sum

from ..exceptions import ConflictError, StateError, ValidationError
from ..models import LedgerDocument
from ..utils import MONEY_MAX, ZERO, quantize_money, to_decimal

logger = logging.getLogger(__name__)

# LineItem.quantity holds 12 digits with 2 decimal places.
QUANTITY_MAX = Decimal("9999999999.99")

NUMBER_PREFIXES = {
    LedgerDocument.Kind.RECEIVABLE: "AR-INV",
    LedgerDocument.Kind.PAYABLE: "AP-BILL",
}


@dataclass(frozen=True)
class LineAmounts:
    base: Decimal
    tax: Decimal
    total: Decimal


def compute_line(quantity, unit_price, tax_rate) -> LineAmounts:
    """Base = qty * price, tax = base * rate / 100, total = base + tax."""
    base = quantize_money(quantity * unit_price)
    tax = quantize_money(quantity * unit_price * tax_rate / Decimal("100"))
    return LineAmounts(base=base, tax=tax, total=base + tax)


def _check_fits(value: Decimal, field: str, *, limit: Decimal = MONEY_MAX, **details) -> Decimal:
    if abs(value) > limit:
        raise ValidationError(
            f"{field} is too large (at most {limit}).",
            details={"field": field, **details},
        )
    return value


def _clean_line_items(line_items: Iterable[dict]) -> list[dict]:
    cleaned = []
    for ix, raw in enumerate(line_items or []):
        description = (raw.get("description") or "").strip()
        if not description:
            raise ValidationError(
                "Every line item needs a description.",
                details={"line": ix, "field": "description"},
            )
        quantity = to_decimal(raw.get("quantity"), field="quantity")
        unit_price = to_decimal(raw.get("unit_price"), field="unit_price")
        tax_rate = to_decimal(raw.get("tax_rate", ZERO), field="tax_rate")
        if quantity <= 0:
            raise ValidationError("quantity must be > 0.", details={"line": ix, "field": "quantity"})
        if unit_price < 0:
            raise ValidationError("unit_price must be >= 0.", details={"line": ix, "field": "unit_price"})
        if tax_rate < 0 or tax_rate > 100:
            raise ValidationError(
                "tax_rate must be between 0 and 100.",
                details={"line": ix, "field": "tax_rate"},
            )
        _check_fits(quantity, "quantity", limit=QUANTITY_MAX, line=ix)
        _check_fits(unit_price, "unit_price", line=ix)
        amounts = compute_line(quantity, unit_price, tax_rate)
        _check_fits(amounts.total, "line_total", line=ix)
        cleaned.append(
            {
                "description": description,
                "quantity": quantity,
                "unit_price": unit_price,
                "tax_rate": tax_rate,
                "tax_amount": amounts.tax,
                "line_total": amounts.total,
            }
        )
    if not cleaned:
        raise ValidationError("A document needs at least one line item.", details={"field": "line_items"})
    return cleaned


def create_document(
    *,
    repository,
    kind: str,
    counterparty_name: str,
    document_date: date,
    due_date: date,
    line_items: Iterable[dict],
    counterparty_email: str = "",
    counterparty_phone: str = "",
    order_reference: str = "",
    shipping_cost=ZERO,
    discount_amount=ZERO,
    payment_terms: str = "",
    notes: str = "",
    draft: bool = False,
    today: Optional[date] = None,
) -> LedgerDocument:
    if kind not in LedgerDocument.Kind.values:
        raise ValidationError(f"Unknown document kind '{kind}'.", details={"field": "kind"})
    counterparty_name = (counterparty_name or "").strip()
    if not counterparty_name:
        raise ValidationError("counterparty_name is required.", details={"field": "counterparty_name"})
    if document_date is None or due_date is None:
        raise ValidationError("document_date and due_date are required.", details={"field": "due_date"})
    if due_date < document_date:
        raise ValidationError("due_date cannot be before document_date.", details={"field": "due_date"})

    shipping_cost = _check_fits(to_decimal(shipping_cost, field="shipping_cost"), "shipping_cost")
    discount_amount = _check_fits(to_decimal(discount_amount, field="discount_amount"), "discount_amount")
    if shipping_cost < 0 or discount_amount < 0:
        raise ValidationError(
            "shipping_cost and discount_amount must be >= 0.",
            details={"field": "shipping_cost" if shipping_cost < 0 else "discount_amount"},
        )

    lines = _clean_line_items(line_items)
    tax_amount = _check_fits(sum((line["tax_amount"] for line in lines), ZERO), "tax_amount")
    subtotal = _check_fits(sum((line["line_total"] - line["tax_amount"] for line in lines), ZERO), "subtotal")
    total = _check_fits(quantize_money(subtotal + tax_amount + shipping_cost - discount_amount), "total_amount")
    if total < 0:
        raise ValidationError("Discount cannot exceed the document total.", details={"field": "discount_amount"})

    with transaction.atomic():
        prefix = f"{NUMBER_PREFIXES[kind]}-{document_date.year}-"
        document = repository.create_document(
            kind=kind,
            document_number=repository.next_number(LedgerDocument, "document_number", prefix),
            counterparty_name=counterparty_name,
            counterparty_email=counterparty_email or "",
            counterparty_phone=counterparty_phone or "",
            order_reference=order_reference or "",
            document_date=document_date,
            due_date=due_date,
            subtotal=subtotal,
            tax_amount=tax_amount,
            shipping_cost=quantize_money(shipping_cost),
            discount_amount=quantize_money(discount_amount),
            total_amount=total,
            paid_amount=ZERO,
            balance_amount=total,
            status=LedgerDocument.Status.DRAFT,
            payment_terms=payment_terms or "",
            notes=notes or "",
            line_items=lines,
        )
        if not draft:
            document.status = document.issued_status
            if today is not None:
                document.recalc_status(today)
            elif total == 0:
                document.status = LedgerDocument.Status.PAID
            repository.save_document(document, ["status"])

    logger.info(
        "ledger.document_created",
        extra={
            "document_id": document.id,
            "document_number": document.document_number,
            "kind": kind,
            "total_amount": str(total),
        },
    )
    return document


def get_document(*, repository, clock, document_id) -> LedgerDocument:
    """Fetch one document with its status re-derived against the clock."""
    today = clock.today()
    document = repository.get_document(document_id)
    before = document.status
    if document.recalc_status(today) == before:
        return document

    with transaction.atomic():
        document = repository.get_document_for_update(document_id)
        before = document.status
        if document.recalc_status(today) != before:
            repository.save_document(document, ["status"])
    return document


def issue_document(*, repository, clock, document_id) -> LedgerDocument:
    with transaction.atomic():
        document = repository.get_document_for_update(document_id)
        if document.status != LedgerDocument.Status.DRAFT:
            raise StateError(
                f"Only draft documents can be issued (status is '{document.status}').",
                details={"document_id": document.id, "status": document.status},
            )
        document.status = document.issued_status
        document.recalc_status(clock.today())
        repository.save_document(document, ["status"])
    return document


def cancel_document(*, repository, clock, document_id, reason: str = "") -> LedgerDocument:
    with transaction.atomic():
        document = repository.get_document_for_update(document_id)
        if document.status in LedgerDocument.TERMINAL_STATUSES:
            raise StateError(
                f"A {document.status} document cannot be cancelled.",
                details={"document_id": document.id, "status": document.status},
            )
        if repository.payments_total(document) > 0:
            raise ConflictError(
                "Payments have been applied to this document.",
                details={"document_id": document.id, "paid_amount": str(document.paid_amount)},
            )
        document.status = LedgerDocument.Status.CANCELLED
        document.cancelled_at = clock.now()
        fields = ["status", "cancelled_at"]
        if reason:
            document.notes = f"{document.notes}\n{reason}".strip()
            fields.append("notes")
        repository.save_document(document, fields)

    logger.info(
        "ledger.document_cancelled",
        extra={"document_id": document.id, "document_number": document.document_number},
    )
    return document


def refresh_statuses(*, repository, today: date, kind: Optional[str] = None) -> int:
    """
    Re-derive the status of every open document against ``today``.

    Payments are the usual trigger for a status change, but a document can
    also become overdue simply because time passed. Returns how many rows
    changed.
    """
    with transaction.atomic():
        changed = []
        for document in repository.open_documents(kind=kind, for_update=True):
            before = document.status
            if document.recalc_status(today) != before:
                changed.append(document)
        if changed:
            repository.bulk_update_status(changed)
    if changed:
        logger.info("ledger.statuses_refreshed", extra={"count": len(changed), "today": today.isoformat()})
    return len(changed)


def list_documents(
    *,
    repository,
    clock,
    status: Optional[str] = None,
    search: Optional[str] = None,
    kind: Optional[str] = None,
    counterparty: Optional[str] = None,
):
    if status and status != "all" and status not in LedgerDocument.Status.values:
        raise ValidationError(f"Unknown status '{status}'.", details={"field": "status"})
    if kind and kind not in LedgerDocument.Kind.values:
        raise ValidationError(f"Unknown document kind '{kind}'.", details={"field": "kind"})
    refresh_statuses(repository=repository, today=clock.today())
    return repository.filter_documents(status=status, search=search, kind=kind, counterparty=counterparty)


def document_summary(*, repository, kind: Optional[str] = None) -> dict:
    qs = repository.documents().exclude(status=LedgerDocument.Status.CANCELLED)
    if kind:
        if kind not in LedgerDocument.Kind.values:
            raise ValidationError(f"Unknown document kind '{kind}'.", details={"field": "kind"})
        qs = qs.filter(kind=kind)
    totals = qs.aggregate(
        invoiced=Sum("total_amount"),
        paid=Sum("paid_amount"),
        due=Sum("balance_amount", filter=~Q(status=LedgerDocument.Status.DRAFT)),
        overdue=Sum("balance_amount", filter=Q(status=LedgerDocument.Status.OVERDUE)),
    )
    return {
        "total_invoiced": totals["invoiced"] or ZERO,
        "total_paid": totals["paid"] or ZERO,
        "total_due": totals["due"] or ZERO,
        "total_overdue": totals["overdue"] or ZERO,
        "document_count": qs.count(),
    }
