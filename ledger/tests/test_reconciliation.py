from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from ledger.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from ledger.models import BankAccount, BankTransaction, GLTransaction, Reconciliation
from ledger.services.reconciliation import compute_snapshot

from .helpers import TODAY, make_account, make_bank_txn, make_gl_txn, make_service


def bank(debit="0", credit="0", kind=BankTransaction.Kind.OTHER):
    return BankTransaction(debit=Decimal(debit), credit=Decimal(credit), kind=kind)


def gl(debit="0", credit="0", status=GLTransaction.Status.OUTSTANDING):
    return GLTransaction(debit=Decimal(debit), credit=Decimal(credit), status=status)


class ComputeSnapshotTests(SimpleTestCase):
    def test_back_office_sample_account(self):
        bank_lines = [
            bank(debit="2000000", kind=BankTransaction.Kind.DEPOSIT),
            bank(credit="1500000", kind=BankTransaction.Kind.WITHDRAWAL),
            bank(credit="50000", kind=BankTransaction.Kind.FEE),
            bank(debit="150000", kind=BankTransaction.Kind.INTEREST),
            bank(debit="5450000", kind=BankTransaction.Kind.DEPOSIT),
        ]
        gl_lines = [
            gl(debit="2000000", status=GLTransaction.Status.CLEARED),
            gl(credit="1500000", status=GLTransaction.Status.CLEARED),
            gl(credit="500000"),
            gl(debit="5450000"),
        ]

        snap = compute_snapshot(bank_lines, gl_lines)

        self.assertEqual(snap.bank_balance, Decimal("6050000"))
        self.assertEqual(snap.gl_balance, Decimal("5450000"))
        self.assertEqual(snap.outstanding_checks, Decimal("500000"))
        self.assertEqual(snap.outstanding_deposits, Decimal("5450000"))
        self.assertEqual(snap.variance, Decimal("-4350000"))
        self.assertEqual(snap.bank_fees, Decimal("50000"))
        self.assertEqual(snap.interest_earned, Decimal("150000"))
        self.assertFalse(snap.is_balanced)

    def test_cancelled_gl_lines_are_not_outstanding(self):
        snap = compute_snapshot([], [gl(credit="100", status=GLTransaction.Status.CANCELLED)])

        self.assertEqual(snap.outstanding_checks, Decimal("0"))
        self.assertEqual(snap.gl_balance, Decimal("-100"))

    def test_empty_account_is_balanced(self):
        self.assertTrue(compute_snapshot([], []).is_balanced)


class ReconciliationSessionTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.account = make_account()
        deposit = make_bank_txn(self.account, debit="2000000", kind=BankTransaction.Kind.DEPOSIT)
        deposit_gl = make_gl_txn(self.account, debit="2000000", reference="DEP-001")
        self.service.match_transactions(deposit.id, deposit_gl.id)

        self.fee = make_bank_txn(self.account, credit="50000", kind=BankTransaction.Kind.FEE)
        self.fee_gl = make_gl_txn(self.account, credit="50000", reference="FEE-03")
        self.statement_date = TODAY - timedelta(days=1)

    def test_preview_reports_variance(self):
        snap = self.service.reconciliation_summary(self.account.id)

        self.assertEqual(snap.bank_balance, Decimal("1950000"))
        self.assertEqual(snap.gl_balance, Decimal("1950000"))
        self.assertEqual(snap.outstanding_checks, Decimal("50000"))
        self.assertEqual(snap.variance, Decimal("50000"))
        self.assertFalse(snap.as_dict()["is_balanced"])

    def test_commit_rejected_until_variance_is_zero(self):
        account_before = BankAccount.objects.values().get(pk=self.account.pk)

        with self.assertRaises(ConflictError) as ctx:
            self.service.commit_reconciliation(self.account.id, self.statement_date)

        self.assertEqual(ctx.exception.details["variance"], "50000.00")
        self.assertFalse(Reconciliation.objects.exists())
        self.assertEqual(BankAccount.objects.values().get(pk=self.account.pk), account_before)
        self.fee_gl.refresh_from_db()
        self.assertEqual(self.fee_gl.status, GLTransaction.Status.OUTSTANDING)

        self.service.match_transactions(self.fee.id, self.fee_gl.id)
        reconciliation = self.service.commit_reconciliation(
            self.account.id, self.statement_date, notes="March close"
        )

        self.assertEqual(reconciliation.status, Reconciliation.Status.COMPLETED)
        self.assertEqual(reconciliation.variance, Decimal("0"))
        self.assertEqual(reconciliation.statement_balance, Decimal("1950000"))
        self.assertEqual(reconciliation.reconciled_balance, Decimal("1950000"))
        self.assertEqual(reconciliation.gl_balance, Decimal("1950000"))
        self.assertEqual(reconciliation.bank_fees, Decimal("50000"))
        self.assertEqual(reconciliation.interest_earned, Decimal("0"))
        self.assertEqual(reconciliation.notes, "March close")
        self.assertEqual(reconciliation.completed_at, self.service.clock.now())

        self.account.refresh_from_db()
        self.assertEqual(self.account.last_reconciliation_date, TODAY)
        self.assertEqual(self.account.reconciliation_status, BankAccount.ReconciliationStatus.COMPLETED)

    def test_commit_sees_unmatch_made_after_preview(self):
        self.service.match_transactions(self.fee.id, self.fee_gl.id)
        self.assertTrue(self.service.reconciliation_summary(self.account.id).is_balanced)

        self.service.unmatch_transactions(self.fee.id, self.fee_gl.id)

        with self.assertRaises(ConflictError):
            self.service.commit_reconciliation(self.account.id, self.statement_date)
        self.assertFalse(Reconciliation.objects.exists())

    def test_statement_date_is_required(self):
        with self.assertRaises(ValidationError):
            self.service.commit_reconciliation(self.account.id, None)

    def test_unknown_account(self):
        with self.assertRaises(NotFoundError):
            self.service.commit_reconciliation(999999, self.statement_date)
        with self.assertRaises(NotFoundError):
            self.service.reconciliation_summary(999999)

    def test_history_is_newest_first(self):
        self.service.match_transactions(self.fee.id, self.fee_gl.id)
        older = self.service.commit_reconciliation(self.account.id, TODAY - timedelta(days=30))
        newer = self.service.commit_reconciliation(self.account.id, TODAY)

        history = list(self.service.list_reconciliations(self.account.id))

        self.assertEqual([r.pk for r in history], [newer.pk, older.pk])


class ReconciliationImmutabilityTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.account = make_account()
        self.reconciliation = self.service.commit_reconciliation(self.account.id, TODAY)

    def test_cannot_be_edited(self):
        self.reconciliation.notes = "changed"
        with self.assertRaises(StateError):
            self.reconciliation.save()

    def test_cannot_be_deleted(self):
        with self.assertRaises(StateError):
            self.reconciliation.delete()
        self.assertTrue(Reconciliation.objects.filter(pk=self.reconciliation.pk).exists())
