"""
Tests for the order receipt task.
"""

import os
import shutil
import tempfile
from decimal import Decimal
from django.test import TestCase, override_settings
from django.contrib.auth.models import User

from wallet import ledger
from wallet.tasks import generate_order_receipt


class OrderReceiptTaskTest(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.user = User.objects.create_user(username='buyer', password='testpass123')
        ledger.credit(self.user, '500.00')

    def test_receipt_written_for_completed_order(self):
        order = ledger.debit(self.user, '300.00', product_id='p1', product_title='Icon Pack')

        with override_settings(MEDIA_ROOT=self.media_root):
            path = generate_order_receipt.apply(args=[order.pk]).get()

        self.assertTrue(path.startswith(f'receipts/order_{order.pk}_'))
        self.assertTrue(path.endswith('.pdf'))
        self.assertTrue(os.path.exists(os.path.join(self.media_root, path)))
        order.refresh_from_db()
        self.assertEqual(order.receipt_path, path)

    def test_pending_order_skipped(self):
        order = ledger.debit(
            self.user, Decimal('300.00'), product_id='p1',
            product_title='Icon Pack', instructions='Custom',
        )

        with override_settings(MEDIA_ROOT=self.media_root):
            path = generate_order_receipt.apply(args=[order.pk]).get()

        self.assertEqual(path, '')
        self.assertEqual(os.listdir(self.media_root), [])

    def test_missing_order_skipped(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            self.assertEqual(generate_order_receipt.apply(args=[9999]).get(), '')
