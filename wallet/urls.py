"""
URL configuration for the Wallet app.
"""

from django.urls import path
from .views import (
    WalletBalanceView,
    MeView,
    PurchaseView,
    CheckoutView,
    DepositListCreateView,
    OrderListView,
    OrderDeliveryView,
    LedgerHistoryView,
    AdminDepositListView,
    AdminDepositApproveView,
    AdminDepositRejectView,
    AdminOrderListView,
    AdminOrderApproveView,
    AdminOrderCancelView,
    AdminUserListView,
    AdminUserBalanceView,
    AdminOverviewView,
)

app_name = 'wallet'

urlpatterns = [
    # Client wallet
    path('balance/', WalletBalanceView.as_view(), name='balance'),
    path('me/', MeView.as_view(), name='me'),
    path('purchase/', PurchaseView.as_view(), name='purchase'),
    path('checkout/', CheckoutView.as_view(), name='checkout'),
    path('deposits/', DepositListCreateView.as_view(), name='deposits'),
    path('orders/', OrderListView.as_view(), name='orders'),
    path('orders/<int:pk>/delivery/', OrderDeliveryView.as_view(), name='order-delivery'),
    path('ledger/', LedgerHistoryView.as_view(), name='ledger'),

    # Admin console
    path('admin/deposits/', AdminDepositListView.as_view(), name='admin-deposits'),
    path('admin/deposits/<int:pk>/approve/', AdminDepositApproveView.as_view(), name='admin-deposit-approve'),
    path('admin/deposits/<int:pk>/reject/', AdminDepositRejectView.as_view(), name='admin-deposit-reject'),
    path('admin/orders/', AdminOrderListView.as_view(), name='admin-orders'),
    path('admin/orders/<int:pk>/approve/', AdminOrderApproveView.as_view(), name='admin-order-approve'),
    path('admin/orders/<int:pk>/cancel/', AdminOrderCancelView.as_view(), name='admin-order-cancel'),
    path('admin/users/', AdminUserListView.as_view(), name='admin-users'),
    path('admin/users/<int:pk>/balance/', AdminUserBalanceView.as_view(), name='admin-user-balance'),
    path('admin/overview/', AdminOverviewView.as_view(), name='admin-overview'),
]
