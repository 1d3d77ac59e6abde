"""
Domain errors raised by the ledger engine and the workflows.

Views translate them into API responses; nothing here knows about HTTP.
"""

from decimal import Decimal


class WalletError(Exception):
    """Base class for wallet domain errors."""


class LedgerValidationError(WalletError):
    """Input rejected before any store call (non-positive amount, empty field)."""


class InsufficientFunds(WalletError):
    """Debit refused because the wallet balance is below the amount."""

    def __init__(self, required: Decimal, balance: Decimal):
        self.required = required
        self.balance = balance
        super().__init__('Insufficient funds')

    @property
    def shortfall(self) -> Decimal:
        return max(self.required - self.balance, Decimal('0.00'))


class AlreadyHandled(WalletError):
    """A status transition was requested on a record that is no longer pending."""

    def __init__(self, record, status: str):
        self.record = record
        self.status = status
        super().__init__(f'{record.__class__.__name__} #{record.pk} already {status}')


class DepositNotFound(WalletError):
    """No deposit with the given id."""


class OrderNotFound(WalletError):
    """No order with the given id (or not visible to the caller)."""


class OrderNotDeliverable(WalletError):
    """Delivery requested for an order that is not completed."""


class StoreUnavailable(WalletError):
    """
    The database failed during an operation.

    The mutation may or may not have been applied; callers must re-read
    wallet, deposit and order state before retrying.
    """
