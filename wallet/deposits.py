"""
Deposit approval workflow.

    pending --approve--> approved   (wallet credited once)
    pending --reject---> rejected   (no balance effect)

Both transitions are a compare-and-swap on `status = 'pending'`, so a second
approve or reject, sequential or concurrent, matches no row and reports
`AlreadyHandled` instead of repeating the effect.
"""

import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import ledger
from .exceptions import AlreadyHandled, DepositNotFound, LedgerValidationError
from .ledger import store_guard
from .models import Deposit, DepositStatus, PaymentMethod

logger = logging.getLogger(__name__)

DEFAULT_REJECT_NOTE = 'Rejected by admin'


def _required_text(value, field: str) -> str:
    value = str(value or '').strip()
    if not value:
        raise LedgerValidationError(f'{field} is required')
    return value


def _get(deposit_id) -> Deposit:
    try:
        return Deposit.objects.select_related('user').get(pk=deposit_id)
    except Deposit.DoesNotExist:
        raise DepositNotFound(f'Deposit {deposit_id} not found')


def submit(user, amount, payment_method, sender_number, transaction_id) -> Deposit:
    """
    Record a top-up claim as `pending`.

    The money moved out-of-band; nothing is credited until an admin
    approves the claim.
    """
    amount = ledger.validate_amount(amount)
    limit = settings.WALLET_MAX_DEPOSIT
    if limit is not None and amount > limit:
        raise LedgerValidationError(f'Amount must not exceed {limit}')

    payment_method = _required_text(payment_method, 'Payment method').lower()
    if payment_method not in PaymentMethod.values:
        raise LedgerValidationError(f'Unsupported payment method: {payment_method}')

    with store_guard():
        deposit = Deposit.objects.create(
            user=user,
            amount=amount,
            payment_method=payment_method,
            sender_number=_required_text(sender_number, 'Sender number'),
            transaction_id=_required_text(transaction_id, 'Transaction id'),
        )

    logger.info(f"Deposit #{deposit.pk} of {amount} via {payment_method} submitted by user {user.pk}")
    return deposit


def approve(deposit_id) -> Deposit:
    """
    Approve a pending deposit and credit the wallet, in one transaction.

    Raises:
        DepositNotFound: unknown id.
        AlreadyHandled: the deposit is no longer pending; nothing changed.
    """
    with store_guard():
        with transaction.atomic():
            claimed = Deposit.objects.filter(
                pk=deposit_id,
                status=DepositStatus.PENDING,
            ).update(status=DepositStatus.APPROVED, updated_at=timezone.now())
            deposit = _get(deposit_id)
            if not claimed:
                logger.info(f"Deposit #{deposit.pk} already {deposit.status}, approve ignored")
                raise AlreadyHandled(deposit, deposit.status)

            ledger.credit(
                deposit.user,
                deposit.amount,
                deposit=deposit,
                note=f"Deposit #{deposit.pk} via {deposit.payment_method}",
            )

    logger.info(f"Deposit #{deposit.pk} approved, credited {deposit.amount} to user {deposit.user_id}")
    return deposit


def reject(deposit_id, notes: Optional[str] = None) -> Deposit:
    """
    Reject a pending deposit. Never touches a balance.

    Raises:
        DepositNotFound: unknown id.
        AlreadyHandled: the deposit is no longer pending; nothing changed.
    """
    notes = (notes or '').strip() or DEFAULT_REJECT_NOTE

    with store_guard():
        claimed = Deposit.objects.filter(
            pk=deposit_id,
            status=DepositStatus.PENDING,
        ).update(
            status=DepositStatus.REJECTED,
            admin_notes=notes,
            updated_at=timezone.now(),
        )
        deposit = _get(deposit_id)

    if not claimed:
        logger.info(f"Deposit #{deposit.pk} already {deposit.status}, reject ignored")
        raise AlreadyHandled(deposit, deposit.status)

    logger.info(f"Deposit #{deposit.pk} rejected: {notes}")
    return deposit


def list_for_user(user):
    return Deposit.objects.filter(user=user)


def list_all(status: Optional[str] = None):
    deposits = Deposit.objects.select_related('user')
    if status:
        deposits = deposits.filter(status=status)
    return deposits
