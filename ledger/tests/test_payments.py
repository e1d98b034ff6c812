from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from ledger.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from ledger.models import LedgerDocument, Payment

from .helpers import TODAY, make_document, make_service

Status = LedgerDocument.Status


class PaymentApplierTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.document = make_document(self.service, total="1000.00")

    def assertInvariant(self, document):
        document.refresh_from_db()
        self.assertEqual(document.paid_amount + document.balance_amount, document.total_amount)
        self.assertGreaterEqual(document.balance_amount, 0)

    def pay(self, amount, **kwargs):
        kwargs.setdefault("method", Payment.Method.BANK_TRANSFER)
        kwargs.setdefault("date", TODAY)
        return self.service.payments.apply_payment(self.document, amount, **kwargs)

    def test_partial_then_full_payment(self):
        document, payment = self.pay("400")

        self.assertEqual(payment.amount, Decimal("400"))
        self.assertEqual(document.paid_amount, Decimal("400.00"))
        self.assertEqual(document.balance_amount, Decimal("600.00"))
        self.assertEqual(document.status, Status.PARTIAL)
        self.assertInvariant(document)

        document, _ = self.pay("600")

        self.assertEqual(document.balance_amount, Decimal("0.00"))
        self.assertEqual(document.status, Status.PAID)
        self.assertInvariant(document)

    def test_overpayment_is_rejected(self):
        self.pay("400")

        with self.assertRaises(ValidationError) as ctx:
            self.pay("700")

        self.assertEqual(ctx.exception.code, "validation_error")
        self.assertEqual(ctx.exception.details["balance_amount"], "600.00")
        self.document.refresh_from_db()
        self.assertEqual(self.document.paid_amount, Decimal("400.00"))
        self.assertEqual(self.document.payments.count(), 1)

    def test_paying_a_paid_document_exceeds_balance(self):
        self.pay("1000")
        with self.assertRaises(ValidationError):
            self.pay("0.01")

    def test_non_positive_amounts_are_rejected(self):
        for amount in ("0", "-5", "abc", None):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    self.pay(amount)
        self.assertFalse(Payment.objects.exists())

    def test_more_than_two_decimals_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.pay("10.005")

    def test_unknown_method_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.pay("10", method="barter")

    def test_cancelled_document_is_a_state_error(self):
        self.service.cancel_document(self.document.id)

        with self.assertRaises(StateError) as ctx:
            self.pay("100")

        self.assertEqual(ctx.exception.code, "invalid_state")
        self.assertFalse(Payment.objects.exists())
        self.assertInvariant(self.document)

    def test_draft_document_is_a_state_error(self):
        draft = make_document(self.service, draft=True)
        with self.assertRaises(StateError):
            self.service.payments.apply_payment(draft, "10", Payment.Method.CASH, TODAY)

    def test_payment_numbers_follow_document_kind(self):
        _, first = self.pay("100")
        _, second = self.pay("100")
        bill = make_document(self.service, kind=LedgerDocument.Kind.PAYABLE)
        _, bill_payment = self.service.payments.apply_payment(bill, "50", Payment.Method.CHECK, TODAY)

        self.assertEqual(first.payment_number, "AR-PAY-2026-000001")
        self.assertEqual(second.payment_number, "AR-PAY-2026-000002")
        self.assertEqual(bill_payment.payment_number, "AP-PAY-2026-000001")

    def test_partial_payment_on_overdue_document_stays_overdue(self):
        late = make_document(self.service, due_in=-1)
        document, _ = self.service.payments.apply_payment(late, "100", Payment.Method.CASH, TODAY)
        self.assertEqual(document.status, Status.OVERDUE)

        document, _ = self.service.payments.apply_payment(late, "900", Payment.Method.CASH, TODAY)
        self.assertEqual(document.status, Status.PAID)

    def test_record_payment_returns_updated_document(self):
        document = self.service.record_payment(
            self.document.id,
            TODAY,
            Payment.Method.CASH,
            "250.00",
            reference="RCPT-1",
            notes="Counter sale",
        )

        self.assertIsInstance(document, LedgerDocument)
        self.assertEqual(document.balance_amount, Decimal("750.00"))
        payment = document.payments.get()
        self.assertEqual(payment.reference, "RCPT-1")
        self.assertEqual(payment.notes, "Counter sale")

    def test_record_payment_for_unknown_document(self):
        with self.assertRaises(NotFoundError):
            self.service.record_payment(424242, TODAY, Payment.Method.CASH, "10")


class IdempotentPaymentTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.document = make_document(self.service, total="1000.00")

    def test_retry_with_same_key_applies_once(self):
        _, first = self.service.payments.apply_payment(
            self.document, "300", Payment.Method.CASH, TODAY, idempotency_key="retry-1"
        )
        document, second = self.service.payments.apply_payment(
            self.document, "300.00", Payment.Method.CASH, TODAY, idempotency_key="retry-1"
        )

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(document.paid_amount, Decimal("300.00"))
        self.assertEqual(document.payments.count(), 1)

    def test_same_key_with_different_amount_is_a_conflict(self):
        self.service.payments.apply_payment(
            self.document, "300", Payment.Method.CASH, TODAY, idempotency_key="retry-1"
        )
        with self.assertRaises(ConflictError):
            self.service.payments.apply_payment(
                self.document, "301", Payment.Method.CASH, TODAY, idempotency_key="retry-1"
            )
        self.assertEqual(self.document.payments.count(), 1)

    def test_keys_are_scoped_per_document(self):
        other = make_document(self.service, total="500.00")
        self.service.payments.apply_payment(self.document, "100", Payment.Method.CASH, TODAY, idempotency_key="k")
        _, payment = self.service.payments.apply_payment(other, "100", Payment.Method.CASH, TODAY, idempotency_key="k")

        self.assertEqual(payment.document_id, other.id)
        self.assertEqual(Payment.objects.count(), 2)


class PaymentImmutabilityTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.document = make_document(self.service)
        _, self.payment = self.service.payments.apply_payment(
            self.document, "100", Payment.Method.CASH, TODAY
        )

    def test_payment_cannot_be_edited(self):
        self.payment.amount = Decimal("1.00")
        with self.assertRaises(StateError):
            self.payment.save()
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.amount, Decimal("100.00"))

    def test_payment_cannot_be_deleted(self):
        with self.assertRaises(StateError):
            self.payment.delete()
        self.assertTrue(Payment.objects.filter(pk=self.payment.pk).exists())

    def test_payment_dates_can_differ_from_clock(self):
        _, payment = self.service.payments.apply_payment(
            self.document, "10", Payment.Method.CASH, TODAY - timedelta(days=3)
        )
        self.assertEqual(payment.date, TODAY - timedelta(days=3))
