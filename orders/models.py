"""
Order Models - Order, OrderItem and Payment entities with status tracking.

Order Status Flow:
    PENDING -> ORDER_CONFIRMED -> BEING_PACKED -> READY_FOR_PICKUP   (store admin)
    READY_FOR_PICKUP -> OUT_FOR_DELIVERY -> DELIVERED                (courier)
    any open status -> CANCELLED

See orders.fulfillment for the transition rules.
"""
import random
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from accounts.models import Customer, Courier
from catalog.models import Store, Product
from core.exceptions import ConflictError

ORDER_NUMBER_ATTEMPTS = 50


def generate_order_number(now=None) -> str:
    """Human-readable order number: ORD-YYMM-RRRR."""
    now = now or timezone.now()
    return f"ORD-{now:%y%m}-{random.randint(0, 9999):04d}"


class Order(models.Model):
    """
    Customer order placed at one store.

    The customer's contact details and addresses are copied onto the order
    so later profile edits do not rewrite order history.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ORDER_CONFIRMED = 'order_confirmed', 'Order confirmed'
        BEING_PACKED = 'being_packed', 'Being packed'
        READY_FOR_PICKUP = 'ready_for_pickup', 'Ready for pickup'
        OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for delivery'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        FAILED = 'failed', 'Failed'

    store = models.ForeignKey(
        Store,
        on_delete=models.PROTECT,
        related_name='orders',
        help_text="Store where order is placed"
    )
    order_number = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        help_text="Human-readable order number"
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=20, blank=True, default='')
    shipping_address = models.TextField()
    billing_address = models.TextField(blank=True, default='')
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Total order amount as submitted"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        help_text="Current order status"
    )
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    payment_method = models.CharField(max_length=30)
    notes = models.TextField(blank=True, default='')
    courier = models.ForeignKey(
        Courier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries',
        help_text="Courier delivering this order"
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store', 'status']),
            models.Index(fields=['customer', 'created_at']),
            models.Index(fields=['courier', 'status']),
        ]

    def __str__(self):
        return f"{self.order_number} - {self.store.name} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self.next_order_number()
        super().save(*args, **kwargs)

    @classmethod
    def next_order_number(cls) -> str:
        """Draw order numbers until one is not yet taken."""
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            if not cls.objects.filter(order_number=number).exists():
                return number
        raise ConflictError("Could not allocate an order number, please retry")

    @property
    def item_count(self) -> int:
        return self.items.count()

    @property
    def items_total(self) -> Decimal:
        """Sum of line subtotals; not enforced to equal total_amount."""
        return sum((item.subtotal for item in self.items.all()), Decimal('0.00'))


class OrderItem(models.Model):
    """
    OrderItem entity representing a product in an order.

    Stores the unit price at time of order to preserve historical pricing.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent order"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,  # Prevent deletion of products with orders
        related_name='order_items',
        help_text="Ordered product"
    )
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity ordered"
    )
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Price per unit at time of order"
    )

    class Meta:
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.product.name} @ ${self.unit_price}"

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.quantity * self.unit_price


class Payment(models.Model):
    """
    A payment attempt for an order at the payment gateway.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    gateway_order_id = models.CharField(max_length=100, unique=True)
    gateway_payment_id = models.CharField(max_length=100, null=True, blank=True)
    gateway_signature = models.CharField(max_length=256, null=True, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-created_at']

    def __str__(self):
        return f"Payment {self.gateway_order_id} for {self.order.order_number} ({self.status})"
