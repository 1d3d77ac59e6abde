"""
Concurrency tests for the Wallet app.

These tests verify that debits and deposit approvals stay correct when
they race: no double-spend, no negative balance and no double credit.
"""

from decimal import Decimal
from concurrent.futures import ThreadPoolExecutor
from django.test import TransactionTestCase
from django.contrib.auth.models import User
from django.urls import reverse
from django.db import connection
from rest_framework.test import APIClient
from rest_framework import status
from unittest.mock import patch

from wallet import deposits, ledger
from wallet.exceptions import AlreadyHandled, InsufficientFunds
from wallet.models import Wallet, Order, LedgerEntry, EntryKind


class ConcurrencyTest(TransactionTestCase):
    """
    Test cases for concurrent ledger operations.

    Uses TransactionTestCase so every thread sees committed rows through
    its own database connection.
    """

    def setUp(self):
        """Set up test fixtures."""
        self.user = User.objects.create_user(
            username='buyer',
            password='testpass123'
        )
        self.wallet = Wallet.objects.create(user=self.user, balance=Decimal('100.00'))

    def balance(self):
        return Wallet.objects.get(user=self.user).balance

    def _run(self, fn, *args, **kwargs):
        """Run `fn` in a worker thread and report 'ok' or the exception class name."""
        try:
            fn(*args, **kwargs)
            return 'ok'
        except (InsufficientFunds, AlreadyHandled) as e:
            return e.__class__.__name__
        finally:
            connection.close()

    def _race(self, calls):
        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            futures = [executor.submit(self._run, *call) for call in calls]
            return [future.result() for future in futures]

    def _debit(self, amount):
        return (ledger.debit, self.user, amount, 'p1', 'Icon Pack')

    def test_two_debits_of_80_from_100(self):
        """Exactly one succeeds; the balance ends at 20, never -60."""
        results = self._race([self._debit('80.00'), self._debit('80.00')])

        self.assertEqual(results.count('ok'), 1)
        self.assertEqual(results.count('InsufficientFunds'), 1)
        self.assertEqual(self.balance(), Decimal('20.00'))
        self.assertEqual(Order.objects.count(), 1)

    def test_many_debits_never_overdraw(self):
        results = self._race([self._debit('30.00') for _ in range(5)])

        self.assertEqual(results.count('ok'), 3)
        self.assertEqual(self.balance(), Decimal('10.00'))
        self.assertEqual(Order.objects.count(), 3)
        self.assertEqual(LedgerEntry.objects.filter(kind=EntryKind.DEBIT).count(), 3)

    def test_concurrent_approvals_credit_once(self):
        deposit = deposits.submit(self.user, '500.00', 'bkash', '01711000000', 'TX123')

        results = self._race([(deposits.approve, deposit.pk) for _ in range(4)])

        self.assertEqual(results.count('ok'), 1)
        self.assertEqual(results.count('AlreadyHandled'), 3)
        self.assertEqual(self.balance(), Decimal('600.00'))
        self.assertEqual(LedgerEntry.objects.filter(deposit=deposit).count(), 1)

    def test_mixed_debits_and_credits_balance_out(self):
        """Final balance equals initial + credits - successful debits."""
        calls = [self._debit('40.00') for _ in range(3)]
        calls += [(ledger.credit, self.user, '25.00') for _ in range(2)]

        results = self._race(calls)

        debited = Decimal('40.00') * results[:3].count('ok')
        self.assertEqual(self.balance(), Decimal('100.00') + Decimal('50.00') - debited)
        self.assertGreaterEqual(self.balance(), Decimal('0.00'))

        latest = LedgerEntry.objects.filter(user=self.user).order_by('-id').first()
        self.assertEqual(latest.balance_after, self.balance())

    @patch('wallet.tasks.generate_order_receipt.delay')
    def test_double_purchase_request(self, mock_task):
        """Two simultaneous purchase requests cannot both spend the same money."""
        url = reverse('wallet:purchase')

        def purchase():
            try:
                client = APIClient()
                client.login(username='buyer', password='testpass123')
                response = client.post(
                    url,
                    {'product_title': 'Icon Pack', 'price': '80.00'},
                    format='json'
                )
                return response.status_code
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=2) as executor:
            codes = [f.result() for f in [executor.submit(purchase) for _ in range(2)]]

        self.assertEqual(sorted(codes), [status.HTTP_200_OK, status.HTTP_400_BAD_REQUEST])
        self.assertEqual(self.balance(), Decimal('20.00'))
