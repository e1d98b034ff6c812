from .aging import AgingBucket, AgingRow, aging_report, classify
from .bank_matching import BankMatcher, MatchResult
from .ledger_service import LedgerService, get_ledger_service
from .payments import PaymentApplier
from .reconciliation import ReconciliationSession, ReconciliationSnapshot, compute_snapshot

__all__ = [
    "AgingBucket",
    "AgingRow",
    "BankMatcher",
    "LedgerService",
    "MatchResult",
    "PaymentApplier",
    "ReconciliationSession",
    "ReconciliationSnapshot",
    "aging_report",
    "classify",
    "compute_snapshot",
    "get_ledger_service",
]
