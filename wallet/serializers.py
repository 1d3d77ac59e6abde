"""
DRF Serializers for the Wallet app.
"""

from decimal import Decimal
from django.conf import settings
from rest_framework import serializers

from catalog.models import Product

from .models import Deposit, Order, LedgerEntry, PaymentMethod


def money_field(**kwargs):
    """Positive currency amount with two decimal places."""
    kwargs.setdefault('min_value', Decimal('0.01'))
    return serializers.DecimalField(max_digits=19, decimal_places=2, **kwargs)


class PurchaseSerializer(serializers.Serializer):
    """
    Serializer for a single purchase.

    Validates:
    - product_title: non-empty
    - price: positive decimal with max 2 decimal places

    When `product_id` names a catalog product, its current title and price
    are the snapshot; otherwise the submitted values are used.
    """

    product_id = serializers.CharField(
        max_length=64,
        required=False,
        allow_null=True,
        allow_blank=True,
    )
    product_title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    price = money_field(required=False)
    instructions = serializers.CharField(
        required=False,
        allow_null=True,
        allow_blank=True,
        help_text='Optional customer instructions; the order then waits for admin approval'
    )

    def validate(self, attrs):
        product_id = attrs.get('product_id') or None
        product = Product.objects.filter(pk=product_id).first() if product_id else None

        if product is not None:
            if not product.is_active:
                raise serializers.ValidationError({'product_id': 'Product is not available'})
            attrs['product_title'] = product.title
            attrs['price'] = product.price
        else:
            if not (attrs.get('product_title') or '').strip():
                raise serializers.ValidationError({'product_title': 'This field is required.'})
            if attrs.get('price') is None:
                raise serializers.ValidationError({'price': 'This field is required.'})

        attrs['product_id'] = product_id
        return attrs


class CheckoutSerializer(serializers.Serializer):
    """Serializer for a whole-cart checkout settled in one transaction."""

    items = PurchaseSerializer(many=True, allow_empty=False)


class DepositCreateSerializer(serializers.Serializer):
    """Serializer for a top-up request."""

    amount = money_field()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    sender_number = serializers.CharField(max_length=32)
    transaction_id = serializers.CharField(max_length=64)

    def validate_amount(self, value):
        limit = settings.WALLET_MAX_DEPOSIT
        if limit is not None and value > limit:
            raise serializers.ValidationError(f'Amount must not exceed {limit}')
        return value


class RejectSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CancelSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, default='')


class BalanceAdjustSerializer(serializers.Serializer):
    """Serializer for an admin balance adjustment."""

    balance = money_field(min_value=Decimal('0.00'))
    note = serializers.CharField(required=False, allow_blank=True, default='')


class WalletSerializer(serializers.Serializer):
    """Serializer for wallet balance response."""

    user_id = serializers.IntegerField()
    username = serializers.CharField()
    balance = serializers.DecimalField(max_digits=19, decimal_places=2)


class DepositSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = Deposit
        fields = (
            'id', 'user_id', 'username', 'amount', 'payment_method',
            'sender_number', 'transaction_id', 'status', 'admin_notes',
            'created_at', 'updated_at',
        )
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.CharField(source='user.email', read_only=True)

    class Meta:
        model = Order
        fields = (
            'id', 'user_id', 'username', 'email', 'product_id', 'product_title',
            'amount', 'status', 'customer_instructions', 'receipt_path',
            'created_at', 'updated_at',
        )
        read_only_fields = fields


class LedgerEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerEntry
        fields = (
            'id', 'kind', 'amount', 'balance_after', 'order_id',
            'deposit_id', 'note', 'created_at',
        )
        read_only_fields = fields

