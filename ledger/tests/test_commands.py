from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from ledger.models import BankAccount, BankTransaction, GLTransaction, LedgerDocument


class SeedLedgerDemoTests(TestCase):
    def test_seeds_sample_data_once(self):
        out = StringIO()
        call_command("seed_ledger_demo", stdout=out)

        self.assertIn("Seeded 2 bank accounts", out.getvalue())
        self.assertEqual(BankAccount.objects.count(), 2)
        main = BankAccount.objects.get(account_name="Main Operating Account")
        self.assertEqual(main.bank_transactions.count(), 5)
        self.assertEqual(main.gl_transactions.count(), 4)
        self.assertEqual(BankTransaction.objects.filter(matched=True).count(), 2)
        self.assertEqual(GLTransaction.objects.filter(status=GLTransaction.Status.CLEARED).count(), 2)
        self.assertEqual(LedgerDocument.objects.count(), 3)
        self.assertTrue(LedgerDocument.objects.filter(status=LedgerDocument.Status.OVERDUE).exists())

        again = StringIO()
        call_command("seed_ledger_demo", stdout=again)
        self.assertIn("already present", again.getvalue())
        self.assertEqual(BankAccount.objects.count(), 2)


class RefreshLedgerStatusesTests(TestCase):
    def setUp(self):
        call_command("seed_ledger_demo", stdout=StringIO())

    def test_marks_documents_overdue(self):
        out = StringIO()
        call_command("refresh_ledger_statuses", "--as-of", "2099-01-01", stdout=out)

        self.assertIn("Updated 2 document status(es)", out.getvalue())
        self.assertFalse(
            LedgerDocument.objects.exclude(status=LedgerDocument.Status.OVERDUE).exists()
        )

    def test_nothing_to_do(self):
        out = StringIO()
        call_command("refresh_ledger_statuses", stdout=out)
        self.assertIn("No document statuses changed", out.getvalue())

    def test_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("refresh_ledger_statuses", "--as-of", "tomorrow", stdout=StringIO())
