"""
Unit tests for the deposit approval workflow.
"""

from decimal import Decimal
from unittest.mock import patch
from django.test import TestCase, override_settings
from django.contrib.auth.models import User

from wallet import deposits
from wallet.exceptions import (
    AlreadyHandled, DepositNotFound, LedgerValidationError, StoreUnavailable,
)
from wallet.models import Wallet, Deposit, LedgerEntry, DepositStatus, EntryKind


class DepositWorkflowTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='payer', password='testpass123')

    def submit(self, amount='500.00', method='bkash'):
        return deposits.submit(self.user, amount, method, '01711000000', 'TX123')

    def balance(self):
        return Wallet.objects.get(user=self.user).balance

    def test_submit_records_pending_claim(self):
        deposit = self.submit()

        self.assertEqual(deposit.status, DepositStatus.PENDING)
        self.assertEqual(deposit.amount, Decimal('500.00'))
        self.assertFalse(Wallet.objects.filter(user=self.user).exists())
        self.assertFalse(LedgerEntry.objects.exists())

    def test_submit_normalizes_payment_method(self):
        deposit = self.submit(method=' Rocket ')
        self.assertEqual(deposit.payment_method, 'rocket')

    def test_submit_validation(self):
        cases = [
            ('0', 'bkash', '01711000000', 'TX1'),
            ('-1', 'bkash', '01711000000', 'TX1'),
            ('abc', 'bkash', '01711000000', 'TX1'),
            ('10', 'paypal', '01711000000', 'TX1'),
            ('10', 'bkash', '  ', 'TX1'),
            ('10', 'bkash', '01711000000', ''),
        ]
        for amount, method, sender, txid in cases:
            with self.subTest(amount=amount, method=method, sender=sender, txid=txid):
                with self.assertRaises(LedgerValidationError):
                    deposits.submit(self.user, amount, method, sender, txid)

        self.assertFalse(Deposit.objects.exists())

    @override_settings(WALLET_MAX_DEPOSIT=Decimal('1000.00'))
    def test_submit_respects_max_deposit(self):
        self.submit('1000.00')

        with self.assertRaises(LedgerValidationError):
            self.submit('1000.01')

    def test_approve_credits_once(self):
        deposit = self.submit('500.00')

        deposits.approve(deposit.pk)

        deposit.refresh_from_db()
        self.assertEqual(deposit.status, DepositStatus.APPROVED)
        self.assertEqual(self.balance(), Decimal('500.00'))
        entry = LedgerEntry.objects.get(deposit=deposit)
        self.assertEqual(entry.kind, EntryKind.CREDIT)
        self.assertEqual(entry.balance_after, Decimal('500.00'))

    def test_second_approve_is_already_handled(self):
        """Approving twice credits 500, not 1000."""
        deposit = self.submit('500.00')
        deposits.approve(deposit.pk)

        with self.assertRaises(AlreadyHandled) as ctx:
            deposits.approve(deposit.pk)

        self.assertEqual(ctx.exception.status, DepositStatus.APPROVED)
        self.assertEqual(self.balance(), Decimal('500.00'))
        self.assertEqual(LedgerEntry.objects.filter(deposit=deposit).count(), 1)

    def test_reject_never_touches_balance(self):
        deposit = self.submit('500.00')

        deposits.reject(deposit.pk, 'Transaction id not found')

        deposit.refresh_from_db()
        self.assertEqual(deposit.status, DepositStatus.REJECTED)
        self.assertEqual(deposit.admin_notes, 'Transaction id not found')
        self.assertFalse(Wallet.objects.filter(user=self.user).exists())

    def test_reject_defaults_note(self):
        deposit = self.submit()

        deposits.reject(deposit.pk, '   ')

        deposit.refresh_from_db()
        self.assertEqual(deposit.admin_notes, deposits.DEFAULT_REJECT_NOTE)

    def test_approve_after_reject_is_already_handled(self):
        deposit = self.submit()
        deposits.reject(deposit.pk)

        with self.assertRaises(AlreadyHandled):
            deposits.approve(deposit.pk)

        self.assertFalse(Wallet.objects.filter(user=self.user).exists())

    def test_reject_after_approve_is_already_handled(self):
        deposit = self.submit()
        deposits.approve(deposit.pk)

        with self.assertRaises(AlreadyHandled):
            deposits.reject(deposit.pk)

        deposit.refresh_from_db()
        self.assertEqual(deposit.status, DepositStatus.APPROVED)
        self.assertIsNone(deposit.admin_notes)

    def test_unknown_deposit(self):
        with self.assertRaises(DepositNotFound):
            deposits.approve(9999)
        with self.assertRaises(DepositNotFound):
            deposits.reject(9999)

    def test_failed_credit_leaves_deposit_pending(self):
        deposit = self.submit()

        with patch('wallet.deposits.ledger.credit', side_effect=StoreUnavailable('down')):
            with self.assertRaises(StoreUnavailable):
                deposits.approve(deposit.pk)

        deposit.refresh_from_db()
        self.assertEqual(deposit.status, DepositStatus.PENDING)

        deposits.approve(deposit.pk)
        self.assertEqual(self.balance(), Decimal('500.00'))

    def test_listing(self):
        other = User.objects.create_user(username='other', password='testpass123')
        mine = self.submit('10.00')
        deposits.submit(other, '20.00', 'rocket', '01811000000', 'TX9')
        deposits.approve(mine.pk)

        self.assertEqual(list(deposits.list_for_user(self.user)), [mine])
        self.assertEqual(deposits.list_all().count(), 2)
        self.assertEqual(list(deposits.list_all(DepositStatus.APPROVED)), [mine])
