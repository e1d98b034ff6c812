from django.urls import path

from . import api

app_name = "ledger"

urlpatterns = [
    path("documents/", api.DocumentListView.as_view(), name="documents"),
    path("documents/summary/", api.DocumentSummaryView.as_view(), name="document-summary"),
    path("documents/<int:document_id>/", api.DocumentDetailView.as_view(), name="document-detail"),
    path("documents/<int:document_id>/issue/", api.DocumentIssueView.as_view(), name="document-issue"),
    path("documents/<int:document_id>/cancel/", api.DocumentCancelView.as_view(), name="document-cancel"),
    path("documents/<int:document_id>/payments/", api.DocumentPaymentView.as_view(), name="document-payments"),
    path("aging/", api.AgingReportView.as_view(), name="aging"),
    path("bank-accounts/", api.BankAccountListView.as_view(), name="bank-accounts"),
    path(
        "bank-accounts/<int:account_id>/unreconciled/",
        api.UnreconciledTransactionsView.as_view(),
        name="bank-account-unreconciled",
    ),
    path(
        "bank-accounts/<int:account_id>/reconciliation/",
        api.ReconciliationSummaryView.as_view(),
        name="bank-account-reconciliation",
    ),
    path(
        "bank-accounts/<int:account_id>/reconciliations/",
        api.ReconciliationListView.as_view(),
        name="bank-account-reconciliations",
    ),
    path("matches/", api.MatchView.as_view(), name="match"),
    path("matches/unmatch/", api.UnmatchView.as_view(), name="unmatch"),
]
