"""
API Views for the Wallet app.

This module contains the two facades over the ledger engine and workflows:
- Client wallet endpoints: balance, purchase, checkout, top-up, history
- Admin console endpoints: deposit/order review, user balances, overview

Views hold no business rules; they validate input, call `wallet.ledger`,
`wallet.deposits` or `wallet.orders`, and translate domain errors.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from catalog.models import Product

from . import deposits, ledger, orders
from .exceptions import (
    AlreadyHandled,
    DepositNotFound,
    InsufficientFunds,
    LedgerValidationError,
    OrderNotDeliverable,
    OrderNotFound,
    StoreUnavailable,
)
from .models import Deposit, DepositStatus, Order, OrderStatus, Wallet
from .permissions import IsStoreAdmin
from .roles import is_admin
from .serializers import (
    BalanceAdjustSerializer,
    CancelSerializer,
    CheckoutSerializer,
    DepositCreateSerializer,
    DepositSerializer,
    LedgerEntrySerializer,
    OrderSerializer,
    PurchaseSerializer,
    RejectSerializer,
    WalletSerializer,
)
from .tasks import queue_order_receipt

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = 'Service temporarily unavailable, please try again'


def already_processed(record) -> Response:
    """Idempotent transition hit a non-pending record: report, don't fail."""
    label = record.__class__.__name__
    return Response({
        'message': f'{label} already processed',
        'already_processed': True,
        'id': record.pk,
        'status': record.status,
    }, status=status.HTTP_200_OK)


def insufficient_funds(error: InsufficientFunds) -> Response:
    return Response({
        'success': False,
        'error': str(error),
        'required': error.required,
        'balance': error.balance,
        'shortfall': error.shortfall,
    }, status=status.HTTP_400_BAD_REQUEST)


class WalletAPIView(APIView):
    """
    Base view translating wallet domain errors into responses.

    - LedgerValidationError -> 400
    - DepositNotFound / OrderNotFound -> 404
    - OrderNotDeliverable -> 409
    - StoreUnavailable -> 503, with no claim about partial state
    """

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, LedgerValidationError):
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        if isinstance(exc, (DepositNotFound, OrderNotFound)):
            return Response({'error': str(exc)}, status=status.HTTP_404_NOT_FOUND)
        if isinstance(exc, OrderNotDeliverable):
            return Response({'error': str(exc)}, status=status.HTTP_409_CONFLICT)
        if isinstance(exc, StoreUnavailable):
            return Response(
                {'error': STORE_UNAVAILABLE_MESSAGE},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return super().handle_exception(exc)


class AdminAPIView(WalletAPIView):
    """Base view for the admin console; requires the admin role."""

    permission_classes = [IsAuthenticated, IsStoreAdmin]


def validated_status(request, choices):
    """Read the optional `status` filter or raise a validation error."""
    value = request.query_params.get('status') or None
    if value is not None and value not in choices.values:
        raise LedgerValidationError(f'Unknown status: {value}')
    return value


# ---------------------------------------------------------------------------
# Client wallet
# ---------------------------------------------------------------------------


class WalletBalanceView(WalletAPIView):
    """
    GET /api/wallet/balance/

    Get the current balance of the authenticated user's wallet.
    The wallet is created with a zero balance on first access.
    """

    def get(self, request):
        """Return the user's wallet balance."""
        balance = ledger.get_balance(request.user)
        serializer = WalletSerializer({
            'user_id': request.user.id,
            'username': request.user.username,
            'balance': balance,
        })
        return Response(serializer.data)


class MeView(WalletAPIView):
    """
    GET /api/wallet/me/

    Identity of the caller and whether the admin console is available.
    """

    def get(self, request):
        return Response({
            'user_id': request.user.id,
            'username': request.user.username,
            'email': request.user.email,
            'is_admin': is_admin(request.user),
        })


class PurchaseView(WalletAPIView):
    """
    POST /api/wallet/purchase/

    Buy one product with the wallet balance.

    Request body:
        - product_id (str, optional): catalog product id
        - product_title (str): title snapshot when the product is not in the catalog
        - price (decimal): price snapshot when the product is not in the catalog
        - instructions (str, optional): order then waits for admin approval

    Returns:
        - 200: `success: true` with the created order
        - 400: `success: false` on insufficient funds (prompt a top-up),
               or a validation error
        - 401/403: Authentication required
    """

    def post(self, request):
        """Handle purchase request."""
        serializer = PurchaseSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'success': False, 'error': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )
        data = serializer.validated_data

        try:
            order = ledger.debit(
                request.user,
                data['price'],
                product_id=data['product_id'],
                product_title=data['product_title'],
                instructions=data.get('instructions'),
            )
        except InsufficientFunds as e:
            return insufficient_funds(e)

        # Receipts are only issued once delivery is authorized
        if order.is_completed:
            queue_order_receipt(order.id)

        return Response({
            'success': True,
            'message': 'Purchase successful',
            'order': OrderSerializer(order).data,
            'balance': ledger.get_balance(request.user),
        }, status=status.HTTP_200_OK)


class CheckoutView(WalletAPIView):
    """
    POST /api/wallet/checkout/

    Buy every line of a cart in one all-or-nothing transaction.

    Request body:
        - items (list): objects shaped like the purchase request body
    """

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'success': False, 'error': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            settled = ledger.debit_many(request.user, serializer.validated_data['items'])
        except InsufficientFunds as e:
            return insufficient_funds(e)

        for order in settled:
            if order.is_completed:
                queue_order_receipt(order.id)

        return Response({
            'success': True,
            'message': 'Checkout successful',
            'orders': OrderSerializer(settled, many=True).data,
            'balance': ledger.get_balance(request.user),
        }, status=status.HTTP_200_OK)


class DepositListCreateView(WalletAPIView):
    """
    GET  /api/wallet/deposits/  -> the user's deposits, newest first
    POST /api/wallet/deposits/  -> submit a top-up claim (pending)
    """

    def get(self, request):
        items = deposits.list_for_user(request.user)
        return Response({
            'deposits': DepositSerializer(items, many=True).data,
            'count': len(items),
        })

    def post(self, request):
        """Handle top-up request."""
        serializer = DepositCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        deposit = deposits.submit(request.user, **serializer.validated_data)
        return Response({
            'message': 'Deposit submitted for review',
            'deposit_id': deposit.id,
            'deposit': DepositSerializer(deposit).data,
        }, status=status.HTTP_201_CREATED)


class OrderListView(WalletAPIView):
    """
    GET /api/wallet/orders/

    The user's orders, newest first.
    """

    def get(self, request):
        items = orders.list_for_user(request.user)
        return Response({
            'orders': OrderSerializer(items, many=True).data,
            'count': len(items),
        })


class OrderDeliveryView(WalletAPIView):
    """
    GET /api/wallet/orders/<id>/delivery/

    Download file or external link of a completed order owned by the caller.
    """

    def get(self, request, pk):
        return Response(orders.delivery_for(pk, request.user))


class LedgerHistoryView(WalletAPIView):
    """
    GET /api/wallet/ledger/

    Every balance change of the user's wallet, newest first.
    """

    def get(self, request):
        entries = ledger.history(request.user)
        return Response({
            'entries': LedgerEntrySerializer(entries, many=True).data,
            'count': len(entries),
        })


# ---------------------------------------------------------------------------
# Admin console
# ---------------------------------------------------------------------------


class AdminDepositListView(AdminAPIView):
    """
    GET /api/wallet/admin/deposits/?status=pending

    All deposits, newest first.
    """

    def get(self, request):
        items = deposits.list_all(validated_status(request, DepositStatus))
        return Response({
            'deposits': DepositSerializer(items, many=True).data,
            'count': len(items),
        })


class AdminDepositApproveView(AdminAPIView):
    """
    POST /api/wallet/admin/deposits/<id>/approve/

    Approve a pending deposit and credit the wallet exactly once.
    """

    def post(self, request, pk):
        try:
            deposit = deposits.approve(pk)
        except AlreadyHandled as e:
            return already_processed(e.record)

        logger.info(f"Admin {request.user.pk} approved deposit #{deposit.pk}")
        return Response({
            'message': 'Deposit approved',
            'deposit': DepositSerializer(deposit).data,
            'balance': ledger.get_balance(deposit.user),
        })


class AdminDepositRejectView(AdminAPIView):
    """
    POST /api/wallet/admin/deposits/<id>/reject/

    Reject a pending deposit. Request body: notes (str, optional).
    """

    def post(self, request, pk):
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            deposit = deposits.reject(pk, serializer.validated_data.get('notes'))
        except AlreadyHandled as e:
            return already_processed(e.record)

        logger.info(f"Admin {request.user.pk} rejected deposit #{deposit.pk}")
        return Response({
            'message': 'Deposit rejected',
            'deposit': DepositSerializer(deposit).data,
        })


class AdminOrderListView(AdminAPIView):
    """
    GET /api/wallet/admin/orders/?status=pending&q=icon

    All orders, newest first; `q` searches title, username and email.
    """

    def get(self, request):
        items = orders.list_all(
            status=validated_status(request, OrderStatus),
            query=request.query_params.get('q') or None,
        )
        return Response({
            'orders': OrderSerializer(items, many=True).data,
            'count': len(items),
        })


class AdminOrderApproveView(AdminAPIView):
    """
    POST /api/wallet/admin/orders/<id>/approve/

    Authorize delivery of a pending order. No money moves.
    """

    def post(self, request, pk):
        try:
            order = orders.approve_order(pk)
        except AlreadyHandled as e:
            return already_processed(e.record)

        logger.info(f"Admin {request.user.pk} approved order #{order.pk}")
        return Response({
            'message': 'Order approved',
            'order': OrderSerializer(order).data,
        })


class AdminOrderCancelView(AdminAPIView):
    """
    POST /api/wallet/admin/orders/<id>/cancel/

    Cancel a pending order and refund its amount. Request body: note (str, optional).
    """

    def post(self, request, pk):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = orders.cancel_order(pk, serializer.validated_data['note'])
        except AlreadyHandled as e:
            return already_processed(e.record)

        logger.info(f"Admin {request.user.pk} cancelled order #{order.pk}")
        return Response({
            'message': 'Order cancelled and refunded',
            'order': OrderSerializer(order).data,
            'balance': ledger.get_balance(order.user),
        })


class AdminUserListView(AdminAPIView):
    """
    GET /api/wallet/admin/users/

    Users with their wallet balances.
    """

    def get(self, request):
        users = User.objects.annotate(
            balance=Coalesce(
                'wallet__balance',
                Value(Decimal('0.00')),
                output_field=DecimalField(max_digits=19, decimal_places=2),
            )
        ).order_by('-date_joined', '-id')

        return Response({
            'users': [
                {
                    'id': user.id,
                    'username': user.username,
                    'email': user.email,
                    'balance': user.balance,
                    'is_admin': is_admin(user),
                    'date_joined': user.date_joined,
                }
                for user in users
            ],
            'count': len(users),
        })


class AdminUserBalanceView(AdminAPIView):
    """
    POST /api/wallet/admin/users/<id>/balance/

    Set a user's balance. Request body: balance (decimal >= 0), note (str, optional).
    """

    def post(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        serializer = BalanceAdjustSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        note = serializer.validated_data['note'] or f'by {request.user.username}'
        balance = ledger.adjust(user, serializer.validated_data['balance'], note=note)
        return Response({
            'message': 'Balance updated',
            'user_id': user.id,
            'balance': balance,
        })


class AdminOverviewView(AdminAPIView):
    """
    GET /api/wallet/admin/overview/

    Dashboard counters for the admin console.
    """

    def get(self, request):
        week_ago = timezone.now() - timedelta(days=7)
        total_balance = Wallet.objects.aggregate(
            total=Coalesce(
                Sum('balance'),
                Value(Decimal('0.00')),
                output_field=DecimalField(max_digits=19, decimal_places=2),
            )
        )['total']

        return Response({
            'total_users': User.objects.count(),
            'total_products': Product.objects.count(),
            'total_orders': Order.objects.count(),
            'pending_orders': Order.objects.filter(status=OrderStatus.PENDING).count(),
            'pending_deposits': Deposit.objects.filter(status=DepositStatus.PENDING).count(),
            'approved_deposits_last_7_days': Deposit.objects.filter(
                status=DepositStatus.APPROVED,
                created_at__gte=week_ago,
            ).count(),
            'total_balance': total_balance,
        })
