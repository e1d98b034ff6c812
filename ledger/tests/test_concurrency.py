from decimal import Decimal
from threading import Barrier, Lock, Thread

from django.db import close_old_connections, connection
from django.test import TransactionTestCase

from ledger.exceptions import ConflictError, LedgerError, ValidationError
from ledger.models import LedgerDocument, Payment, Reconciliation

from .helpers import TODAY, make_account, make_bank_txn, make_document, make_gl_txn, make_service


class LedgerConcurrencyTests(TransactionTestCase):
    def setUp(self):
        if connection.vendor == "sqlite":
            self.skipTest("SQLite locking makes this concurrency test flaky; run on Postgres/MySQL.")
        self.service = make_service()

    def run_in_threads(self, *targets):
        errors = []
        errors_lock = Lock()
        barrier = Barrier(len(targets))

        def worker(target):
            try:
                barrier.wait()
                target()
            except LedgerError as exc:
                with errors_lock:
                    errors.append(exc)
            finally:
                close_old_connections()

        threads = [Thread(target=worker, args=(target,)) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_racing_payments_never_overpay(self):
        document = make_document(self.service, total="1000.00")

        def pay():
            make_service().payments.apply_payment(document, "600.00", Payment.Method.CASH, TODAY)

        errors = self.run_in_threads(pay, pay)

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], ValidationError)
        document.refresh_from_db()
        self.assertEqual(document.paid_amount, Decimal("600.00"))
        self.assertEqual(document.paid_amount + document.balance_amount, document.total_amount)
        self.assertEqual(document.status, LedgerDocument.Status.PARTIAL)

    def test_racing_matches_pair_only_once(self):
        account = make_account()
        bank_txn = make_bank_txn(account, debit="100")
        first_gl = make_gl_txn(account, debit="100")
        second_gl = make_gl_txn(account, debit="100")

        errors = self.run_in_threads(
            lambda: make_service().match_transactions(bank_txn.id, first_gl.id),
            lambda: make_service().match_transactions(bank_txn.id, second_gl.id),
        )

        self.assertEqual(len(errors), 1)
        first_gl.refresh_from_db()
        second_gl.refresh_from_db()
        self.assertEqual(sum(1 for gl in (first_gl, second_gl) if gl.matched), 1)

    def test_racing_payments_on_different_documents_get_distinct_numbers(self):
        first = make_document(self.service, total="500.00", name="Pars Retail Group")
        second = make_document(self.service, total="500.00", name="Caspian Home Store")

        errors = self.run_in_threads(
            lambda: make_service().payments.apply_payment(first, "100.00", Payment.Method.CASH, TODAY),
            lambda: make_service().payments.apply_payment(second, "100.00", Payment.Method.CASH, TODAY),
        )

        self.assertEqual(errors, [])
        numbers = sorted(Payment.objects.values_list("payment_number", flat=True))
        self.assertEqual(numbers, ["AR-PAY-2026-000001", "AR-PAY-2026-000002"])

    def test_commit_only_closes_on_the_matched_state(self):
        account = make_account()
        bank_txn = make_bank_txn(account, credit="50")
        gl_txn = make_gl_txn(account, credit="50")
        self.service.match_transactions(bank_txn.id, gl_txn.id)

        errors = self.run_in_threads(
            lambda: make_service().commit_reconciliation(account.id, TODAY),
            lambda: make_service().unmatch_transactions(bank_txn.id, gl_txn.id),
        )

        bank_txn.refresh_from_db()
        self.assertFalse(bank_txn.matched)
        closes = list(Reconciliation.objects.filter(bank_account=account))
        if closes:
            # Commit ran first and saw the pair matched.
            self.assertEqual(len(closes), 1)
            self.assertEqual(closes[0].outstanding_checks, Decimal("0"))
            self.assertEqual(errors, [])
        else:
            # Unmatch ran first; the 50.00 check is outstanding again.
            self.assertEqual(len(errors), 1)
            self.assertIsInstance(errors[0], ConflictError)
