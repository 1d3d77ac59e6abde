"""
Data models for the Wallet app.

This module contains:
- Wallet: per-user prepaid balance with decimal precision
- LedgerEntry: immutable audit row written for every balance mutation
- Deposit: user top-up claim awaiting admin verification
- Order: purchase record with snapshotted title and price
- UserRole: role grants used by the admin console

Balances are written only by `wallet.ledger`; deposit and order statuses only
by `wallet.deposits` and `wallet.orders`.
"""

from decimal import Decimal
from django.db import models
from django.db.models import Q
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator


class DepositStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentMethod(models.TextChoices):
    BKASH = 'bkash', 'bKash'
    ROCKET = 'rocket', 'Rocket'


class EntryKind(models.TextChoices):
    DEBIT = 'debit', 'Debit'
    CREDIT = 'credit', 'Credit'
    REFUND = 'refund', 'Refund'
    ADJUSTMENT = 'adjustment', 'Adjustment'


class Role(models.TextChoices):
    ADMIN = 'admin', 'Admin'
    MODERATOR = 'moderator', 'Moderator'
    USER = 'user', 'User'


class Wallet(models.Model):
    """
    Wallet model linked to a User that maintains a balance.

    Uses DecimalField for accurate currency representation.
    Balance constraint: must be >= 0.00, enforced by the database as well.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='wallet',
        help_text='The user who owns this wallet'
    )
    balance = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text='Current wallet balance (must be >= 0.00)'
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text='When the wallet was created'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text='When the wallet was last updated'
    )

    class Meta:
        """Wallet model metadata."""

        verbose_name = 'Wallet'
        verbose_name_plural = 'Wallets'
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name='wallet_balance_non_negative',
            ),
        ]

    def __str__(self) -> str:
        """Return string representation of the wallet."""
        return f"Wallet({self.user.username}: ৳{self.balance})"


class Deposit(models.Model):
    """
    A top-up claim for money sent out-of-band through a mobile payment app.

    Created `pending`; an admin verifies the sender number and transaction id
    by hand and moves it exactly once to `approved` or `rejected`.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='deposits',
    )
    amount = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
    )
    sender_number = models.CharField(
        max_length=32,
        help_text='Phone number the payment was sent from'
    )
    transaction_id = models.CharField(
        max_length=64,
        help_text='External payment reference, verified manually'
    )
    status = models.CharField(
        max_length=16,
        choices=DepositStatus.choices,
        default=DepositStatus.PENDING,
    )
    admin_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Deposit model metadata."""

        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='deposit_user_time_idx'),
            models.Index(fields=['status'], name='deposit_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Deposit #{self.pk}: {self.user.username} ৳{self.amount} [{self.status}]"

    @property
    def is_pending(self) -> bool:
        return self.status == DepositStatus.PENDING


class Order(models.Model):
    """
    A purchase settled against the wallet.

    `product_title` and `amount` are snapshots taken at purchase time and
    never follow later edits of the product. `product_id` is a soft
    reference; the product may be deleted afterwards.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='orders',
    )
    product_id = models.CharField(max_length=64, blank=True, null=True)
    product_title = models.CharField(max_length=200)
    amount = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    status = models.CharField(
        max_length=16,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    customer_instructions = models.TextField(blank=True, null=True)
    receipt_path = models.CharField(
        max_length=255,
        blank=True,
        default='',
        help_text='Path to the generated receipt file'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Order model metadata."""

        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='order_user_time_idx'),
            models.Index(fields=['status'], name='order_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Order #{self.pk}: {self.product_title} ৳{self.amount} [{self.status}]"

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED


class LedgerEntry(models.Model):
    """
    Audit log of wallet balance mutations.

    Exactly one entry is written by every ledger operation that changes a
    balance. Entries are never updated or deleted (PROTECT).
    """

    user = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='ledger_entries',
    )
    kind = models.CharField(max_length=16, choices=EntryKind.choices)
    amount = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    balance_after = models.DecimalField(max_digits=19, decimal_places=2)
    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name='ledger_entries',
        null=True,
        blank=True,
    )
    deposit = models.ForeignKey(
        Deposit,
        on_delete=models.PROTECT,
        related_name='ledger_entries',
        null=True,
        blank=True,
    )
    note = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """LedgerEntry model metadata."""

        verbose_name = 'Ledger entry'
        verbose_name_plural = 'Ledger entries'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='ledger_user_time_idx'),
        ]

    def __str__(self) -> str:
        return (
            f"LedgerEntry #{self.pk}: {self.user.username} "
            f"{self.kind} ৳{self.amount} -> ৳{self.balance_after}"
        )


class UserRole(models.Model):
    """Role grant for a user; `admin` unlocks the admin console."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='roles',
    )
    role = models.CharField(max_length=16, choices=Role.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'role'], name='unique_user_role'),
        ]

    def __str__(self) -> str:
        return f"{self.user.username}: {self.role}"
