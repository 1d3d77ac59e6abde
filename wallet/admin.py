"""
Admin configuration for the Wallet app.

Balances and statuses are read-only here; changes go through the ledger
engine and the workflows via admin actions.
"""

from django.contrib import admin, messages

from . import deposits, orders
from .exceptions import AlreadyHandled, WalletError
from .models import Wallet, LedgerEntry, Deposit, Order, UserRole


def run_transition(modeladmin, request, queryset, transition, verb):
    """Apply a workflow transition to each selected row and report counts."""
    done = skipped = 0
    for obj in queryset:
        try:
            transition(obj.pk)
            done += 1
        except AlreadyHandled:
            skipped += 1
        except WalletError as e:
            modeladmin.message_user(request, f"#{obj.pk}: {e}", messages.ERROR)
    modeladmin.message_user(request, f"{done} {verb}, {skipped} already processed")


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    """Admin configuration for Wallet model."""

    list_display = ('id', 'user', 'balance', 'created_at', 'updated_at')
    list_filter = ('created_at', 'updated_at')
    search_fields = ('user__username', 'user__email')
    readonly_fields = ('user', 'balance', 'created_at', 'updated_at')
    ordering = ('-updated_at',)

    def has_add_permission(self, request):
        """Wallets are created lazily by the ledger."""
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """Admin configuration for LedgerEntry model."""

    list_display = ('id', 'user', 'kind', 'amount', 'balance_after', 'order', 'deposit', 'created_at')
    list_filter = ('kind', 'created_at')
    search_fields = ('user__username', 'note')
    readonly_fields = ('user', 'kind', 'amount', 'balance_after', 'order', 'deposit', 'note', 'created_at')
    ordering = ('-created_at',)

    def has_add_permission(self, request):
        """Entries are only written by the ledger engine."""
        return False

    def has_change_permission(self, request, obj=None):
        """Entries are immutable."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Entries cannot be deleted."""
        return False


@admin.register(Deposit)
class DepositAdmin(admin.ModelAdmin):
    """Admin configuration for Deposit model."""

    list_display = ('id', 'user', 'amount', 'payment_method', 'sender_number',
                    'transaction_id', 'status', 'created_at')
    list_filter = ('status', 'payment_method', 'created_at')
    search_fields = ('user__username', 'sender_number', 'transaction_id')
    readonly_fields = ('user', 'amount', 'payment_method', 'sender_number',
                       'transaction_id', 'status', 'admin_notes', 'created_at', 'updated_at')
    ordering = ('-created_at',)
    actions = ('approve_selected', 'reject_selected')

    def has_add_permission(self, request):
        return False

    @admin.action(description='Approve selected deposits')
    def approve_selected(self, request, queryset):
        run_transition(self, request, queryset, deposits.approve, 'approved')

    @admin.action(description='Reject selected deposits')
    def reject_selected(self, request, queryset):
        run_transition(self, request, queryset, deposits.reject, 'rejected')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin configuration for Order model."""

    list_display = ('id', 'user', 'product_title', 'amount', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('user__username', 'user__email', 'product_title')
    readonly_fields = ('user', 'product_id', 'product_title', 'amount', 'status',
                       'customer_instructions', 'receipt_path', 'created_at', 'updated_at')
    ordering = ('-created_at',)
    actions = ('approve_selected', 'cancel_selected')

    def has_add_permission(self, request):
        return False

    @admin.action(description='Approve selected orders')
    def approve_selected(self, request, queryset):
        run_transition(self, request, queryset, orders.approve_order, 'approved')

    @admin.action(description='Cancel and refund selected orders')
    def cancel_selected(self, request, queryset):
        run_transition(self, request, queryset, orders.cancel_order, 'cancelled')


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    """Admin configuration for UserRole model."""

    list_display = ('user', 'role', 'created_at')
    list_filter = ('role',)
    search_fields = ('user__username', 'user__email')
