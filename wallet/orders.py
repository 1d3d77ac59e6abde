"""
Order fulfilment workflow.

    pending --approve_order--> completed   (no money moves)
    pending --cancel_order---> cancelled   (amount refunded to the wallet)

Orders are created by `ledger.debit`; this module only moves them out of
`pending`, with the same compare-and-swap used for deposits.
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from catalog.models import Product

from . import ledger
from .exceptions import AlreadyHandled, OrderNotFound, OrderNotDeliverable
from .ledger import store_guard
from .models import Order, OrderStatus, EntryKind
from .tasks import queue_order_receipt

logger = logging.getLogger(__name__)


def _get(order_id, **filters) -> Order:
    try:
        return Order.objects.select_related('user').get(pk=order_id, **filters)
    except Order.DoesNotExist:
        raise OrderNotFound(f'Order {order_id} not found')


def _claim(order_id, new_status: str) -> Order:
    """Move a pending order to `new_status` or raise `AlreadyHandled`."""
    claimed = Order.objects.filter(
        pk=order_id,
        status=OrderStatus.PENDING,
    ).update(status=new_status, updated_at=timezone.now())
    order = _get(order_id)
    if not claimed:
        logger.info(f"Order #{order.pk} already {order.status}, {new_status} ignored")
        raise AlreadyHandled(order, order.status)
    return order


def approve_order(order_id) -> Order:
    """
    Authorize delivery of a pending order.

    Approving an order that is already completed raises `AlreadyHandled`,
    which callers report as a no-op. The receipt is queued after commit.
    """
    with store_guard():
        order = _claim(order_id, OrderStatus.COMPLETED)
    queue_order_receipt(order.pk)

    logger.info(f"Order #{order.pk} approved for user {order.user_id}")
    return order


def cancel_order(order_id, note: str = '') -> Order:
    """Cancel a pending order and refund its snapshotted amount."""
    with store_guard():
        with transaction.atomic():
            order = _claim(order_id, OrderStatus.CANCELLED)
            ledger.credit(
                order.user,
                order.amount,
                kind=EntryKind.REFUND,
                order=order,
                note=f"Refund for order #{order.pk}: {note}" if note else f"Refund for order #{order.pk}",
            )

    logger.info(f"Order #{order.pk} cancelled, refunded {order.amount} to user {order.user_id}")
    return order


def delivery_for(order_id, user) -> dict:
    """
    Delivery artifact of a completed order owned by `user`.

    Orders of other users are reported as not found.
    """
    order = _get(order_id, user=user)
    if not order.is_completed:
        raise OrderNotDeliverable(f'Order {order.pk} is {order.status}')

    product = Product.objects.filter(pk=order.product_id).first() if order.product_id else None
    delivery = product.delivery if product else {'file_url': None, 'external_link': None}
    return {
        'order_id': order.pk,
        'product_title': order.product_title,
        **delivery,
    }


def list_for_user(user):
    return Order.objects.filter(user=user)


def list_all(status: Optional[str] = None, query: Optional[str] = None):
    """All orders, newest first, optionally filtered by status and a search term."""
    orders = Order.objects.select_related('user')
    if status:
        orders = orders.filter(status=status)
    if query:
        orders = orders.filter(
            Q(product_title__icontains=query)
            | Q(user__username__icontains=query)
            | Q(user__email__icontains=query)
        )
    return orders
