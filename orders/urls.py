"""
URL routing for order API endpoints.
"""
from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    # Customer
    path('orders/', views.OrderListCreateView.as_view(), name='order-list'),

    # Store admin
    path('orders/all/dashboard/', views.StoreOrderListView.as_view(), name='store-order-list'),
    path('orders/<int:pk>/status/', views.StoreOrderStatusView.as_view(), name='store-order-status'),
    path('orders/<str:ref>/dashboard/', views.StoreOrderDetailView.as_view(), name='store-order-detail'),

    # Payments
    path('orders/<int:pk>/payment/', views.OrderPaymentView.as_view(), name='order-payment'),
    path('orders/<int:pk>/verify-payment/', views.OrderVerifyPaymentView.as_view(), name='order-verify-payment'),

    path('orders/<str:ref>/', views.OrderDetailView.as_view(), name='order-detail'),

    # Courier
    path('delivery/orders/', views.DeliveryOrderListView.as_view(), name='delivery-order-list'),
    path('delivery/orders/<int:pk>/status/', views.DeliveryOrderStatusView.as_view(), name='delivery-order-status'),
    path('delivery/orders/<str:ref>/', views.DeliveryOrderDetailView.as_view(), name='delivery-order-detail'),
]
