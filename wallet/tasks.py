"""
Celery tasks for the Wallet app.

This module contains background tasks triggered after an order is completed.
"""

import logging
import os
from datetime import datetime
from celery import shared_task
from django.conf import settings
from django.db import transaction
from kombu.exceptions import OperationalError as BrokerError
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def generate_order_receipt(self, order_id: int) -> str:
    """
    Generate a PDF receipt for a completed order.

    The receipt is saved to media/receipts/order_{order_id}_{timestamp}.pdf
    and its relative path stored on the order.

    Args:
        order_id: The ID of the Order to generate a receipt for.

    Returns:
        The path to the generated receipt file, or '' when the order is
        missing or not completed.
    """
    # Import here to avoid circular imports
    from wallet.models import Order

    try:
        order = Order.objects.select_related('user').get(id=order_id)
    except Order.DoesNotExist:
        logger.warning(f"Receipt skipped: order #{order_id} not found")
        return ''

    if not order.is_completed:
        logger.warning(f"Receipt skipped: order #{order_id} is {order.status}")
        return ''

    receipts_dir = os.path.join(settings.MEDIA_ROOT, 'receipts')
    os.makedirs(receipts_dir, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    filename = f"order_{order_id}_{timestamp}.pdf"
    filepath = os.path.join(receipts_dir, filename)
    relative_path = f"receipts/{filename}"

    try:
        _draw_receipt(filepath, order)
    except OSError as e:
        logger.error(f"Receipt for order #{order_id} failed: {e}")
        raise self.retry(exc=e)

    order.receipt_path = relative_path
    order.save(update_fields=['receipt_path'])

    logger.info(f"Receipt for order #{order_id} written to {relative_path}")
    return relative_path


def queue_order_receipt(order_id: int) -> None:
    """
    Queue `generate_order_receipt` once the current transaction commits.

    The order is already settled when this runs, so a broker outage must not
    fail the caller: the error is logged and the order keeps an empty
    `receipt_path` until the task is queued again.
    """
    def enqueue():
        try:
            generate_order_receipt.delay(order_id)
        except BrokerError:
            logger.exception(f"Could not queue receipt for order #{order_id}, broker unavailable")

    transaction.on_commit(enqueue)


def _draw_receipt(filepath: str, order) -> None:
    c = canvas.Canvas(filepath, pagesize=A4)
    width, height = A4

    # Header
    c.setFont("Helvetica-Bold", 24)
    c.drawCentredString(width / 2, height - 1 * inch, "Order Receipt")

    c.setLineWidth(2)
    c.line(1 * inch, height - 1.3 * inch, width - 1 * inch, height - 1.3 * inch)

    c.setFont("Helvetica", 12)
    y_position = height - 2 * inch
    line_height = 0.4 * inch

    # Helvetica has no taka glyph, so amounts are printed as BDT
    details = [
        ("Order ID:", str(order.id)),
        ("Date & Time:", order.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')),
        ("", ""),
        ("Customer:", f"{order.user.username} (ID: {order.user.id})"),
        ("Product:", order.product_title),
        ("Product ID:", order.product_id or "-"),
        ("", ""),
        ("Amount paid:", f"BDT {order.amount:,.2f}"),
        ("Paid with:", "Wallet balance"),
    ]

    for label, value in details:
        if label:
            c.setFont("Helvetica-Bold", 12)
            c.drawString(1.5 * inch, y_position, label)
            c.setFont("Helvetica", 12)
            c.drawString(3.5 * inch, y_position, value)
        y_position -= line_height

    # Footer
    c.setFont("Helvetica-Oblique", 10)
    c.drawCentredString(
        width / 2,
        1 * inch,
        "This is an automatically generated receipt. Please keep for your records."
    )

    c.save()
