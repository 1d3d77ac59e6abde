"""
Management command re-queuing receipts for completed orders that have none.

Run it after a broker outage; orders settled while the broker was down keep
an empty `receipt_path`.
"""

from django.core.management.base import BaseCommand

from wallet.models import Order, OrderStatus
from wallet.tasks import queue_order_receipt


class Command(BaseCommand):
    help = 'Queue PDF receipts for completed orders that do not have one yet'

    def handle(self, *args, **options):
        missing = Order.objects.filter(status=OrderStatus.COMPLETED, receipt_path='')
        count = 0
        for order_id in missing.values_list('id', flat=True):
            queue_order_receipt(order_id)
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Queued {count} receipt(s)"))
