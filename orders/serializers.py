"""
Serializers for order models.
"""
from decimal import Decimal

from rest_framework import serializers

from accounts.serializers import CourierSerializer
from catalog.serializers import ProductMinimalSerializer, StoreMinimalSerializer
from .models import Order, OrderItem, Payment


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem with product details."""
    product = ProductMinimalSerializer(read_only=True)
    subtotal = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'quantity', 'unit_price', 'subtotal']


class OrderItemCreateSerializer(serializers.Serializer):
    """One line of a proposed order."""
    product = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CustomerSnapshotSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    shipping_address = serializers.CharField()
    billing_address = serializers.CharField(required=False, allow_blank=True)


class ProposedOrderSerializer(serializers.Serializer):
    """One order of a placement request, addressed to a single store."""
    store = serializers.IntegerField(min_value=1)
    customer = CustomerSnapshotSerializer()
    items = OrderItemCreateSerializer(many=True, allow_empty=False)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    payment_method = serializers.CharField(max_length=30)
    notes = serializers.CharField(required=False, allow_blank=True)


class OrderBatchSerializer(serializers.Serializer):
    """
    Placement request body:

        {"orders": [{"store": 1, "customer": {...}, "items": [...],
                     "total_amount": "12.50", "payment_method": "cod"}]}
    """
    orders = ProposedOrderSerializer(many=True, allow_empty=False)


class OrderSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items.
    Uses prefetch_related for optimized queries.
    """
    store = StoreMinimalSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    courier = CourierSerializer(read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'store', 'customer_id',
            'customer_name', 'customer_email', 'customer_phone',
            'shipping_address', 'billing_address',
            'status', 'payment_status', 'payment_method', 'total_amount',
            'notes', 'items', 'item_count', 'courier',
            'created_at', 'updated_at'
        ]


class OrderListSerializer(serializers.ModelSerializer):
    """
    Optimized serializer for listing orders.
    Uses select_related for store data.
    """
    store_name = serializers.CharField(source='store.name', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'store_id', 'store_name', 'customer_name',
            'status', 'payment_status', 'total_amount', 'item_count',
            'courier_id', 'created_at'
        ]

    def get_item_count(self, obj):
        # Use annotated value if available, otherwise count
        if hasattr(obj, 'items_count'):
            return obj.items_count
        return obj.items.count()


class OrderStatusSerializer(serializers.Serializer):
    # Unknown values are rejected by the transition rules with their own message
    status = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            'id', 'order_id', 'gateway_order_id', 'gateway_payment_id',
            'amount', 'status', 'created_at'
        ]


class PaymentVerifySerializer(serializers.Serializer):
    gateway_order_id = serializers.CharField(max_length=100)
    gateway_payment_id = serializers.CharField(max_length=100)
    signature = serializers.CharField(max_length=256)
