"""
Balance ledger engine.

The only code that writes `Wallet.balance`. Every mutation runs inside one
`transaction.atomic()` block and changes the balance with a single
conditional UPDATE evaluated by the database, so two concurrent requests on
the same wallet are linearized: one fully happens, then the other observes
the updated balance. Each mutation writes exactly one `LedgerEntry`.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Mapping, Optional

from django.contrib.auth.models import User
from django.db import transaction, OperationalError, InterfaceError
from django.db.models import F
from django.utils import timezone

from .exceptions import InsufficientFunds, LedgerValidationError, StoreUnavailable
from .models import Wallet, LedgerEntry, Order, OrderStatus, EntryKind

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
MAX_INTEGER_DIGITS = 17


@contextmanager
def store_guard():
    """Translate database connectivity failures into `StoreUnavailable`."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Account store failure: {e}", exc_info=True)
        raise StoreUnavailable(str(e)) from e


def validate_amount(amount, field: str = 'Amount', allow_zero: bool = False) -> Decimal:
    """
    Coerce `amount` to a currency Decimal or raise `LedgerValidationError`.

    Rejects non-numeric, non-finite, non-positive (or negative when
    `allow_zero`) values and values with more than two decimal places.
    """
    if isinstance(amount, bool):
        raise LedgerValidationError(f'{field} is invalid')
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerValidationError(f'{field} is invalid')

    if not value.is_finite():
        raise LedgerValidationError(f'{field} must be a finite number')
    if value < 0 or (value == 0 and not allow_zero):
        raise LedgerValidationError(f'{field} must be positive')
    # Balance columns hold 19 digits, 2 of them after the point
    if value and value.adjusted() > MAX_INTEGER_DIGITS - 1:
        raise LedgerValidationError(f'{field} is too large')
    try:
        quantized = value.quantize(CENT)
    except InvalidOperation:
        raise LedgerValidationError(f'{field} is too large')
    if value != quantized:
        raise LedgerValidationError(f'{field} must have at most 2 decimal places')
    return quantized


def initial_order_status(instructions: Optional[str]) -> str:
    """Orders carrying customer instructions wait for manual fulfilment."""
    return OrderStatus.PENDING if instructions else OrderStatus.COMPLETED


def ensure_wallet(user: User) -> Wallet:
    """Return the user's wallet, creating the zero-balance row on first access."""
    wallet, created = Wallet.objects.get_or_create(user=user)
    if created:
        logger.info(f"Created wallet for user {user.pk}")
    return wallet


def get_balance(user: User) -> Decimal:
    """Current balance of the user's wallet."""
    with store_guard():
        return ensure_wallet(user).balance


def history(user: User):
    """Ledger entries of the user, newest first."""
    return LedgerEntry.objects.filter(user=user).select_related('order', 'deposit')


def _current_balance(user: User) -> Decimal:
    return Wallet.objects.filter(user=user).values_list('balance', flat=True).get()


def _record(user: User, kind: str, amount: Decimal, **refs) -> LedgerEntry:
    return LedgerEntry.objects.create(
        user=user,
        kind=kind,
        amount=amount,
        balance_after=_current_balance(user),
        **refs
    )


def _decrement(user: User, amount: Decimal) -> None:
    """
    Atomically subtract `amount` if and only if the balance covers it.

    Must run inside a transaction; raises `InsufficientFunds` without
    touching the row when the conditional update matches nothing.
    """
    ensure_wallet(user)
    updated = Wallet.objects.filter(
        user=user,
        balance__gte=amount,
    ).update(
        balance=F('balance') - amount,
        updated_at=timezone.now(),
    )
    if not updated:
        raise InsufficientFunds(required=amount, balance=_current_balance(user))


def _clean_line(line: Mapping) -> dict:
    title = (line.get('product_title') or '').strip()
    if not title:
        raise LedgerValidationError('Product title is required')
    instructions = (line.get('instructions') or '').strip() or None
    return {
        'product_id': line.get('product_id') or None,
        'product_title': title,
        'amount': validate_amount(line.get('price'), field='Price'),
        'instructions': instructions,
    }


def debit(
    user: User,
    amount,
    product_id: Optional[str],
    product_title: str,
    instructions: Optional[str] = None,
) -> Order:
    """
    Charge a purchase to the user's wallet.

    Checks the balance and decrements it in one conditional UPDATE, then
    records the order and its ledger entry in the same transaction.

    Returns:
        The created Order (`completed`, or `pending` when instructions
        were given).

    Raises:
        LedgerValidationError: malformed amount or empty title.
        InsufficientFunds: balance below amount; nothing was written.
        StoreUnavailable: database failure; state is unknown.
    """
    line = _clean_line({
        'product_id': product_id,
        'product_title': product_title,
        'price': amount,
        'instructions': instructions,
    })

    with store_guard():
        try:
            with transaction.atomic():
                _decrement(user, line['amount'])
                order = Order.objects.create(
                    user=user,
                    product_id=line['product_id'],
                    product_title=line['product_title'],
                    amount=line['amount'],
                    status=initial_order_status(line['instructions']),
                    customer_instructions=line['instructions'],
                )
                entry = _record(
                    user, EntryKind.DEBIT, line['amount'],
                    order=order, note=f"Purchase: {line['product_title']}"[:255],
                )
        except InsufficientFunds as e:
            logger.warning(
                f"Debit refused for user {user.pk}: "
                f"required {e.required}, balance {e.balance}"
            )
            raise

    logger.info(
        f"Debited {line['amount']} from user {user.pk} for order #{order.pk} "
        f"({order.status}), balance now {entry.balance_after}"
    )
    return order


def debit_many(user: User, lines: Iterable[Mapping]) -> List[Order]:
    """
    Charge a whole cart in one transaction.

    The total is computed up front and taken with a single conditional
    UPDATE; one order and one ledger entry are written per line. Either
    every line settles or none does.
    """
    cleaned = [_clean_line(line) for line in lines]
    if not cleaned:
        raise LedgerValidationError('Cart is empty')
    total = sum((line['amount'] for line in cleaned), Decimal('0.00'))

    with store_guard():
        try:
            with transaction.atomic():
                _decrement(user, total)
                orders = []
                running_balance = _current_balance(user) + total
                for line in cleaned:
                    order = Order.objects.create(
                        user=user,
                        product_id=line['product_id'],
                        product_title=line['product_title'],
                        amount=line['amount'],
                        status=initial_order_status(line['instructions']),
                        customer_instructions=line['instructions'],
                    )
                    running_balance -= line['amount']
                    LedgerEntry.objects.create(
                        user=user,
                        kind=EntryKind.DEBIT,
                        amount=line['amount'],
                        balance_after=running_balance,
                        order=order,
                        note=f"Checkout: {line['product_title']}"[:255],
                    )
                    orders.append(order)
        except InsufficientFunds as e:
            logger.warning(
                f"Checkout refused for user {user.pk}: "
                f"cart total {e.required}, balance {e.balance}"
            )
            raise

    logger.info(
        f"Checked out {len(orders)} line(s) totalling {total} for user {user.pk}"
    )
    return orders


def credit(
    user: User,
    amount,
    *,
    kind: str = EntryKind.CREDIT,
    deposit=None,
    order=None,
    note: str = '',
) -> Decimal:
    """
    Atomically add `amount` to the user's wallet.

    Called by the deposit approval and order cancellation workflows only.
    When called inside their transaction, the credit commits or rolls back
    together with their status change.

    Returns:
        The balance after the credit.
    """
    if kind not in (EntryKind.CREDIT, EntryKind.REFUND):
        raise LedgerValidationError(f'Unsupported credit kind: {kind}')
    amount = validate_amount(amount)

    with store_guard():
        with transaction.atomic():
            ensure_wallet(user)
            Wallet.objects.filter(user=user).update(
                balance=F('balance') + amount,
                updated_at=timezone.now(),
            )
            entry = _record(user, kind, amount, deposit=deposit, order=order, note=note[:255])

    logger.info(f"Credited {amount} ({kind}) to user {user.pk}, balance now {entry.balance_after}")
    return entry.balance_after


def adjust(user: User, new_balance, note: str = '') -> Decimal:
    """
    Set an absolute balance on behalf of an admin.

    The wallet row is locked for the read-modify-write. Writes one
    `adjustment` entry carrying the absolute difference; the direction is
    kept in the note. No entry is written when the balance is unchanged.
    """
    new_balance = validate_amount(new_balance, field='Balance', allow_zero=True)

    with store_guard():
        with transaction.atomic():
            ensure_wallet(user)
            wallet = Wallet.objects.select_for_update().get(user=user)
            difference = new_balance - wallet.balance
            if not difference:
                return wallet.balance

            Wallet.objects.filter(pk=wallet.pk).update(
                balance=new_balance,
                updated_at=timezone.now(),
            )
            sign = '+' if difference > 0 else '-'
            label = f"Admin adjustment {sign}{abs(difference)}"
            _record(
                user, EntryKind.ADJUSTMENT, abs(difference),
                note=(f"{label}: {note}" if note else label)[:255],
            )

    logger.info(f"Adjusted balance of user {user.pk} by {sign}{abs(difference)} to {new_balance}")
    return new_balance
