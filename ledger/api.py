from __future__ import annotations

import logging
from datetime import date

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import LedgerError, ValidationError
from .serializers import (
    AgingBucketSerializer,
    AgingRowSerializer,
    BankAccountSerializer,
    BankTransactionSerializer,
    CancelInputSerializer,
    CommitReconciliationSerializer,
    DocumentCreateSerializer,
    DocumentSummarySerializer,
    GLTransactionSerializer,
    LedgerDocumentDetailSerializer,
    LedgerDocumentSerializer,
    MatchInputSerializer,
    PaymentInputSerializer,
    ReconciliationSerializer,
    ReconciliationSnapshotSerializer,
)
from .services import aging, get_ledger_service
from .utils import ZERO, decimal_to_str

logger = logging.getLogger(__name__)


def _parse_date_param(raw: str | None, field: str) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD).", details={"field": field}) from exc


class LedgerAPIView(APIView):
    """Base view: ledger errors become ``{"detail", "error", "code", "details"}``."""

    def get_service(self):
        return get_ledger_service()

    def handle_exception(self, exc):
        if isinstance(exc, LedgerError):
            logger.info(
                "ledger.api_error",
                extra={"code": exc.code, "path": self.request.path, "status_code": exc.status_code},
            )
            return Response(exc.to_dict(), status=exc.status_code)
        return super().handle_exception(exc)

    def validated(self, serializer_class, data) -> dict:
        serializer = serializer_class(data=data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class DocumentListView(LedgerAPIView):
    def get(self, request):
        params = request.query_params
        documents = self.get_service().list_documents(
            status=params.get("status") or None,
            search=params.get("search") or None,
            kind=params.get("kind") or None,
            counterparty=params.get("counterparty") or None,
        )
        return Response(LedgerDocumentSerializer(documents, many=True).data)

    def post(self, request):
        data = self.validated(DocumentCreateSerializer, request.data)
        data["line_items"] = [dict(item) for item in data["line_items"]]
        document = self.get_service().create_document(**data)
        return Response(LedgerDocumentDetailSerializer(document).data, status=status.HTTP_201_CREATED)


class DocumentDetailView(LedgerAPIView):
    def get(self, request, document_id: int):
        document = self.get_service().get_document(document_id)
        return Response(LedgerDocumentDetailSerializer(document).data)


class DocumentIssueView(LedgerAPIView):
    def post(self, request, document_id: int):
        document = self.get_service().issue_document(document_id)
        return Response(LedgerDocumentDetailSerializer(document).data)


class DocumentCancelView(LedgerAPIView):
    def post(self, request, document_id: int):
        data = self.validated(CancelInputSerializer, request.data)
        document = self.get_service().cancel_document(document_id, reason=data["reason"])
        return Response(LedgerDocumentDetailSerializer(document).data)


class DocumentPaymentView(LedgerAPIView):
    def post(self, request, document_id: int):
        data = self.validated(PaymentInputSerializer, request.data)
        document = self.get_service().record_payment(document_id, **data)
        return Response(LedgerDocumentDetailSerializer(document).data, status=status.HTTP_201_CREATED)


class DocumentSummaryView(LedgerAPIView):
    def get(self, request):
        summary = self.get_service().document_summary(kind=request.query_params.get("kind") or None)
        return Response(DocumentSummarySerializer(summary).data)


class AgingReportView(LedgerAPIView):
    def get(self, request):
        service = self.get_service()
        as_of = _parse_date_param(request.query_params.get("as_of"), "as_of") or service.clock.today()
        kind = request.query_params.get("kind") or None
        rows = service.get_aging_detail(as_of, kind=kind)
        buckets = aging.summarize(rows)
        return Response(
            {
                "as_of": as_of.isoformat(),
                "total_due": decimal_to_str(sum((b.balance_amount for b in buckets), ZERO)),
                "buckets": AgingBucketSerializer(buckets, many=True).data,
                "rows": AgingRowSerializer(rows, many=True).data,
            }
        )


class BankAccountListView(LedgerAPIView):
    def get(self, request):
        accounts = self.get_service().list_bank_accounts()
        return Response(BankAccountSerializer(accounts, many=True).data)


class UnreconciledTransactionsView(LedgerAPIView):
    def get(self, request, account_id: int):
        result = self.get_service().get_unreconciled(account_id)
        return Response(
            {
                "bank": BankTransactionSerializer(result["bank"], many=True).data,
                "gl": GLTransactionSerializer(result["gl"], many=True).data,
            }
        )


class ReconciliationSummaryView(LedgerAPIView):
    def get(self, request, account_id: int):
        snapshot = self.get_service().reconciliation_summary(account_id)
        return Response(ReconciliationSnapshotSerializer(snapshot.as_dict()).data)


class ReconciliationListView(LedgerAPIView):
    def get(self, request, account_id: int):
        reconciliations = self.get_service().list_reconciliations(account_id)
        return Response(ReconciliationSerializer(reconciliations, many=True).data)

    def post(self, request, account_id: int):
        data = self.validated(CommitReconciliationSerializer, request.data)
        reconciliation = self.get_service().commit_reconciliation(
            account_id,
            data["statement_date"],
            notes=data["notes"],
        )
        return Response(ReconciliationSerializer(reconciliation).data, status=status.HTTP_201_CREATED)


class _MatchView(LedgerAPIView):
    operation = ""

    def post(self, request):
        data = self.validated(MatchInputSerializer, request.data)
        service = self.get_service()
        handler = getattr(service, f"{self.operation}_transactions")
        result = handler(data["bank_transaction_id"], data["gl_transaction_id"])
        return Response(
            {
                "bank": BankTransactionSerializer(result.bank).data,
                "gl": GLTransactionSerializer(result.gl).data,
            }
        )


class MatchView(_MatchView):
    operation = "match"


class UnmatchView(_MatchView):
    operation = "unmatch"
