"""
Unit tests for the order fulfilment workflow.
"""

from decimal import Decimal
from unittest.mock import patch
from django.test import TestCase, RequestFactory
from django.contrib.admin.sites import site
from django.contrib.auth.models import User
from django.contrib.messages.storage.fallback import FallbackStorage

from catalog.models import Product
from wallet import ledger, orders
from wallet.admin import OrderAdmin
from wallet.exceptions import AlreadyHandled, OrderNotFound, OrderNotDeliverable
from wallet.models import Wallet, Order, LedgerEntry, OrderStatus, EntryKind


class OrderWorkflowTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='buyer', email='buyer@example.com', password='testpass123')
        self.product = Product.objects.create(
            title='Logo Design',
            price=Decimal('200.00'),
            file_url='https://cdn.example.com/logo.zip',
        )
        Wallet.objects.create(user=self.user, balance=Decimal('500.00'))

    def buy(self, instructions=None):
        return ledger.debit(
            self.user, self.product.price,
            product_id=self.product.pk,
            product_title=self.product.title,
            instructions=instructions,
        )

    def balance(self):
        return Wallet.objects.get(user=self.user).balance

    def test_approve_pending_order(self):
        order = self.buy('Make it red')

        orders.approve_order(order.pk)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(self.balance(), Decimal('300.00'))

    @patch('wallet.tasks.generate_order_receipt.delay')
    def test_approve_queues_receipt_after_commit(self, mock_task):
        order = self.buy('Make it red')

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            orders.approve_order(order.pk)
            mock_task.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        mock_task.assert_called_once_with(order.pk)

    @patch('wallet.tasks.generate_order_receipt.delay')
    def test_admin_action_approval_queues_receipt(self, mock_task):
        order = self.buy('Make it red')
        staff = User.objects.create_superuser(username='root', password='testpass123')
        request = RequestFactory().post('/')
        request.user = staff
        setattr(request, 'session', {})
        setattr(request, '_messages', FallbackStorage(request))
        order_admin = OrderAdmin(Order, site)

        with self.captureOnCommitCallbacks(execute=True):
            order_admin.approve_selected(request, Order.objects.filter(pk=order.pk))

        mock_task.assert_called_once_with(order.pk)

    def test_approve_completed_order_is_already_handled(self):
        order = self.buy()

        with self.assertRaises(AlreadyHandled) as ctx:
            orders.approve_order(order.pk)

        self.assertEqual(ctx.exception.status, OrderStatus.COMPLETED)

    def test_cancel_refunds_once(self):
        order = self.buy('Make it red')

        orders.cancel_order(order.pk, 'Out of stock')

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertEqual(self.balance(), Decimal('500.00'))
        refund = LedgerEntry.objects.get(order=order, kind=EntryKind.REFUND)
        self.assertEqual(refund.amount, Decimal('200.00'))
        self.assertEqual(refund.note, f'Refund for order #{order.pk}: Out of stock')

        with self.assertRaises(AlreadyHandled):
            orders.cancel_order(order.pk)
        self.assertEqual(self.balance(), Decimal('500.00'))

    def test_refund_note_without_reason(self):
        order = self.buy('Make it red')

        orders.cancel_order(order.pk)

        refund = LedgerEntry.objects.get(order=order, kind=EntryKind.REFUND)
        self.assertEqual(refund.note, f'Refund for order #{order.pk}')

    def test_cannot_cancel_completed_order(self):
        order = self.buy()

        with self.assertRaises(AlreadyHandled):
            orders.cancel_order(order.pk)

        self.assertEqual(self.balance(), Decimal('300.00'))

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            orders.approve_order(9999)
        with self.assertRaises(OrderNotFound):
            orders.cancel_order(9999)

    def test_delivery_of_completed_order(self):
        order = self.buy()

        delivery = orders.delivery_for(order.pk, self.user)

        self.assertEqual(delivery, {
            'order_id': order.pk,
            'product_title': 'Logo Design',
            'file_url': 'https://cdn.example.com/logo.zip',
            'external_link': None,
        })

    def test_delivery_of_pending_order_refused(self):
        order = self.buy('Make it red')

        with self.assertRaises(OrderNotDeliverable):
            orders.delivery_for(order.pk, self.user)

    def test_delivery_hidden_from_other_users(self):
        order = self.buy()
        other = User.objects.create_user(username='other', password='testpass123')

        with self.assertRaises(OrderNotFound):
            orders.delivery_for(order.pk, other)

    def test_delivery_after_product_removed(self):
        order = self.buy()
        self.product.delete()

        delivery = orders.delivery_for(order.pk, self.user)

        self.assertEqual(delivery['product_title'], 'Logo Design')
        self.assertIsNone(delivery['file_url'])

    def test_list_all_filters(self):
        pending = self.buy('Make it red')
        completed = self.buy()

        self.assertEqual(list(orders.list_all()), [completed, pending])
        self.assertEqual(list(orders.list_all(status=OrderStatus.PENDING)), [pending])
        self.assertEqual(orders.list_all(query='buyer@example').count(), 2)
        self.assertEqual(orders.list_all(query='nothing').count(), 0)
        self.assertEqual(list(orders.list_for_user(self.user)), [completed, pending])
