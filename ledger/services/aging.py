"""
Receivable/payable aging.

Everything here is a pure function of a document snapshot and an as-of
date: nothing is written and nothing reads the clock, so classifying the
same snapshot twice gives the same answer.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from django.conf import settings

from ..exceptions import ValidationError
from ..utils import ZERO

CURRENT = "current"
OVERDUE = "overdue"

BINARY_CATEGORIES = (CURRENT, OVERDUE)
BUCKET_CATEGORIES = (CURRENT, "1_30", "31_60", "61_90", "90_plus")

PERCENT_QUANT = Decimal("0.01")


@dataclass(frozen=True)
class AgingRow:
    document_id: int
    document_number: str
    kind: str
    counterparty_name: str
    document_date: date
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    days_overdue: int
    category: str


@dataclass(frozen=True)
class AgingBucket:
    category: str
    document_count: int
    balance_amount: Decimal
    percent_of_total_due: Decimal


def binary_category(days_overdue: int) -> str:
    return OVERDUE if days_overdue > 0 else CURRENT


def bucket_category(days_overdue: int) -> str:
    if days_overdue <= 0:
        return CURRENT
    if days_overdue <= 30:
        return "1_30"
    if days_overdue <= 60:
        return "31_60"
    if days_overdue <= 90:
        return "61_90"
    return "90_plus"


SCHEMES: dict[str, tuple[Callable[[int], str], tuple[str, ...]]] = {
    "binary": (binary_category, BINARY_CATEGORIES),
    "buckets": (bucket_category, BUCKET_CATEGORIES),
}


def get_scheme(name: str | None = None):
    name = name or getattr(settings, "LEDGER_AGING_SCHEME", "binary")
    try:
        return SCHEMES[name]
    except KeyError as exc:
        raise ValidationError(
            f"Unknown aging scheme '{name}'.",
            details={"scheme": name, "choices": sorted(SCHEMES)},
        ) from exc


def days_overdue(due_date: date, as_of_date: date) -> int:
    return max((as_of_date - due_date).days, 0)


def classify(documents: Iterable, as_of_date: date, *, scheme: str | None = None) -> list[AgingRow]:
    """
    Age every open document (``balance_amount > 0``) as of ``as_of_date``.

    Rows come back ordered by due date, oldest first, then by balance,
    largest first.
    """
    if as_of_date is None:
        raise ValidationError("as_of_date is required.", details={"field": "as_of"})
    categorize, _ = get_scheme(scheme)
    rows = []
    for document in documents:
        if not document.is_open:
            continue
        overdue_days = days_overdue(document.due_date, as_of_date)
        rows.append(
            AgingRow(
                document_id=document.id,
                document_number=document.document_number,
                kind=document.kind,
                counterparty_name=document.counterparty_name,
                document_date=document.document_date,
                due_date=document.due_date,
                total_amount=document.total_amount,
                paid_amount=document.paid_amount,
                balance_amount=document.balance_amount,
                days_overdue=overdue_days,
                category=categorize(overdue_days),
            )
        )
    rows.sort(key=lambda row: (row.due_date, -row.balance_amount, row.document_id))
    return rows


def summarize(rows: Iterable[AgingRow], *, scheme: str | None = None) -> list[AgingBucket]:
    _, categories = get_scheme(scheme)
    rows = list(rows)
    total_due = sum((row.balance_amount for row in rows), ZERO)

    buckets = []
    for category in categories:
        members = [row for row in rows if row.category == category]
        bucket_sum = sum((row.balance_amount for row in members), ZERO)
        if total_due == 0:
            percent = ZERO
        else:
            percent = (bucket_sum / total_due * 100).quantize(PERCENT_QUANT)
        buckets.append(
            AgingBucket(
                category=category,
                document_count=len(members),
                balance_amount=bucket_sum,
                percent_of_total_due=percent,
            )
        )
    return buckets


def aging_report(documents: Iterable, as_of_date: date, *, scheme: str | None = None) -> list[AgingBucket]:
    return summarize(classify(documents, as_of_date, scheme=scheme), scheme=scheme)
