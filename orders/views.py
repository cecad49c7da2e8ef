"""
Order API Views.

Customer:
- POST /orders/ - Place a batch of orders (one per store) atomically
- GET /orders/ - Own orders, paginated and sorted
- GET /orders/{id or order number}/ - Own order detail
- POST /orders/{id}/payment/ - Start a gateway payment
- POST /orders/{id}/verify-payment/ - Verify the gateway signature

Store admin:
- GET /orders/all/dashboard/ - Orders of the admin's store
- GET /orders/{id or order number}/dashboard/ - Order detail
- PUT /orders/{id}/status/ - Move an order along the store path

Courier:
- GET /delivery/orders/ - Orders past confirmation
- GET /delivery/orders/{id or order number}/ - Any non-pending order
- PUT /delivery/orders/{id}/status/ - Pick up, deliver or cancel
"""
import logging

from django.db.models import Count
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError
from core.pagination import SortedListMixin
from core.permissions import IsCourier, IsCustomer, IsStoreOwner
from .fulfillment import update_status_as_courier, update_status_as_store
from .models import Order
from .payments import start_payment, verify_payment
from .serializers import (
    OrderBatchSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    PaymentSerializer,
    PaymentVerifySerializer,
)
from .services import get_order_for_reference, place_orders

logger = logging.getLogger(__name__)

ORDER_SORT_FIELDS = {
    'created_at': 'created_at',
    'total_amount': 'total_amount',
    'status': 'status',
    'order_number': 'order_number',
}


def order_queryset():
    return Order.objects.select_related('store', 'courier').prefetch_related(
        'items__product'
    )


def order_list_queryset():
    return Order.objects.select_related('store').annotate(items_count=Count('items'))


class OrderListQueryMixin(SortedListMixin):
    """Shared ``?status=`` filter and sorting for order lists."""
    sort_fields = ORDER_SORT_FIELDS

    def filter_status(self, queryset):
        status_filter = self.request.query_params.get('status', '')
        if status_filter in Order.Status.values:
            queryset = queryset.filter(status=status_filter)
        return queryset


# =============================================================================
# Customer Views
# =============================================================================

class OrderListCreateView(OrderListQueryMixin, generics.ListAPIView):
    """
    GET: List the customer's own orders
    POST: Place orders

    Query Parameters (GET):
        - status: Filter by status
        - sort_by: created_at | total_amount | status | order_number
        - order: asc | desc

    Request Body (POST):
    {
        "orders": [
            {
                "store": 1,
                "customer": {"name": "...", "email": "...", "shipping_address": "..."},
                "items": [{"product": 1, "quantity": 2}],
                "total_amount": "9.98",
                "payment_method": "cod"
            }
        ]
    }
    """
    serializer_class = OrderListSerializer
    permission_classes = [IsCustomer]

    def get_queryset(self):
        queryset = order_list_queryset().filter(customer_id=self.request.user.id)
        return self.sort_queryset(self.filter_status(queryset))

    def post(self, request, *args, **kwargs):
        """
        Returns:
            - 201: All orders created
            - 400: Validation error, unknown store/product or insufficient stock
        """
        serializer = OrderBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        orders = place_orders(request.user.account, serializer.validated_data['orders'])

        created = order_queryset().filter(pk__in=[order.pk for order in orders]).order_by('pk')
        return Response(
            {
                'message': 'Orders placed successfully',
                'orders': OrderSerializer(created, many=True).data
            },
            status=status.HTTP_201_CREATED
        )


class OrderDetailView(APIView):
    """
    GET: Own order by id or order number
    """
    permission_classes = [IsCustomer]

    def get(self, request, ref):
        queryset = order_queryset().filter(customer_id=request.user.id)
        order = get_order_for_reference(queryset, ref)
        return Response({'order': OrderSerializer(order).data})


class OrderPaymentView(APIView):
    """
    POST: Start a payment for an own, unpaid order
    """
    permission_classes = [IsCustomer]

    def post(self, request, pk):
        order = get_order_for_reference(Order.objects.filter(customer_id=request.user.id), pk)
        payment = start_payment(order)
        return Response({'payment': PaymentSerializer(payment).data}, status=status.HTTP_201_CREATED)


class OrderVerifyPaymentView(APIView):
    """
    POST: Verify the gateway signature of a payment

    Request Body:
    {
        "gateway_order_id": "gw_...",
        "gateway_payment_id": "pay_...",
        "signature": "<hex hmac>"
    }
    """
    permission_classes = [IsCustomer]

    def post(self, request, pk):
        order = get_order_for_reference(Order.objects.filter(customer_id=request.user.id), pk)

        serializer = PaymentVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = verify_payment(order, **serializer.validated_data)
        return Response({
            'message': 'Payment verified successfully',
            'payment': PaymentSerializer(payment).data
        })


# =============================================================================
# Store Admin Views
# =============================================================================

class StoreOrderListView(OrderListQueryMixin, generics.ListAPIView):
    """
    GET: Orders placed at the admin's store
    """
    serializer_class = OrderListSerializer
    permission_classes = [IsStoreOwner]

    def get_queryset(self):
        queryset = order_list_queryset().filter(store_id=self.request.user.store_id)
        return self.sort_queryset(self.filter_status(queryset))


class StoreOrderDetailView(APIView):
    permission_classes = [IsStoreOwner]

    def get(self, request, ref):
        queryset = order_queryset().filter(store_id=request.user.store_id)
        order = get_order_for_reference(queryset, ref)
        return Response({'order': OrderSerializer(order).data})


class StoreOrderStatusView(APIView):
    """
    PUT: Confirm, pack, hand over for pickup or cancel an order

    Request Body:
    {"status": "order_confirmed"}
    """
    permission_classes = [IsStoreOwner]

    def put(self, request, pk):
        try:
            order = Order.objects.get(pk=pk, store_id=request.user.store_id)
        except Order.DoesNotExist:
            raise NotFoundError("Order not found")

        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = update_status_as_store(order, serializer.validated_data['status'])
        return Response({
            'message': 'Order status updated successfully',
            'order': OrderSerializer(order_queryset().get(pk=order.pk)).data
        })


# =============================================================================
# Courier Views
# =============================================================================

COURIER_HIDDEN_STATUSES = (Order.Status.PENDING, Order.Status.ORDER_CONFIRMED)
COURIER_OWN_STATUSES = (Order.Status.OUT_FOR_DELIVERY, Order.Status.DELIVERED)


class DeliveryOrderListView(OrderListQueryMixin, generics.ListAPIView):
    """
    GET: Orders past store confirmation

    Query Parameters:
        - status: Filter by status; out_for_delivery and delivered only
          return the requesting courier's own deliveries
        - sort_by / order: Sorting
    """
    serializer_class = OrderListSerializer
    permission_classes = [IsCourier]

    def get_queryset(self):
        queryset = order_list_queryset().exclude(status__in=COURIER_HIDDEN_STATUSES)

        status_filter = self.request.query_params.get('status', '')
        if status_filter in COURIER_OWN_STATUSES:
            queryset = queryset.filter(courier_id=self.request.user.id)
        queryset = self.filter_status(queryset)

        return self.sort_queryset(queryset)


class DeliveryOrderDetailView(APIView):
    permission_classes = [IsCourier]

    def get(self, request, ref):
        queryset = order_queryset().exclude(status=Order.Status.PENDING)
        order = get_order_for_reference(queryset, ref)
        return Response({'order': OrderSerializer(order).data})


class DeliveryOrderStatusView(APIView):
    """
    PUT: out_for_delivery (pick up), delivered or cancelled

    Request Body:
    {"status": "out_for_delivery"}
    """
    permission_classes = [IsCourier]

    def put(self, request, pk):
        try:
            order = Order.objects.get(pk=pk)
        except Order.DoesNotExist:
            raise NotFoundError("Order not found")

        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = update_status_as_courier(order, serializer.validated_data['status'], request.user.id)
        return Response({
            'message': 'Order status updated successfully',
            'order': OrderSerializer(order_queryset().get(pk=order.pk)).data
        })
