"""
Order Service Layer - Atomic order placement.

A request carries a batch of proposed orders, one per store. Each proposal
goes through:
1. Validate required fields and the item list
2. Resolve every referenced product within the claimed store
3. Check requested quantities against current stock
4. Decrement stock for all items with ONE conditional update
   ("only where stock >= quantity"); fewer updated rows than items means a
   concurrent order took the stock first
5. Create the order (status pending, payment pending) and its items

The whole batch runs in one transaction: the first failing proposal aborts
the request, rolls back everything before it, and later proposals are not
attempted.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from django.db import transaction
from django.db.models import Case, F, IntegerField, Q, Value, When
from django.utils import timezone

from accounts.models import Customer
from catalog.models import Product, Store
from core.exceptions import NotFoundError, ValidationFailed
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

REQUIRED_ORDER_FIELDS = ('store', 'customer', 'items', 'total_amount', 'payment_method')
REQUIRED_CUSTOMER_FIELDS = ('name', 'email', 'shipping_address')


class InsufficientStockError(ValidationFailed):
    """Raised when there's not enough stock for an order item."""
    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient quantity for product {product_name}: "
            f"requested {requested}, available {available}"
        )


def validate_order_data(data: Dict) -> None:
    """
    Validate the structure of one proposed order.

    Raises:
        ValidationFailed: Naming the first missing or invalid field
    """
    missing = [name for name in REQUIRED_ORDER_FIELDS if data.get(name) in (None, '', [], {})]
    if missing and missing != ['items']:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

    customer = data['customer']
    if not isinstance(customer, dict):
        raise ValidationFailed("Invalid customer structure")
    missing_customer = [name for name in REQUIRED_CUSTOMER_FIELDS if not customer.get(name)]
    if missing_customer:
        raise ValidationFailed(f"Missing customer fields: {', '.join(missing_customer)}")

    validate_order_items(data.get('items'))


def validate_order_items(items: List[Dict]) -> None:
    """
    Validate order items structure.

    Args:
        items: List of dicts with 'product' and 'quantity'

    Raises:
        ValidationFailed: If validation fails
    """
    if not items or not isinstance(items, list):
        raise ValidationFailed("Items are required")

    seen_products = set()
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationFailed(f"Item {idx}: invalid structure")
        if 'product' not in item:
            raise ValidationFailed(f"Item {idx}: missing 'product'")
        if 'quantity' not in item:
            raise ValidationFailed(f"Item {idx}: missing 'quantity'")

        product_id = item['product']
        quantity = item['quantity']

        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationFailed(f"Item {idx}: quantity must be a positive integer")

        if product_id in seen_products:
            raise ValidationFailed(f"Item {idx}: duplicate product {product_id}")
        seen_products.add(product_id)


def _decrement_stock(items: List[Dict]) -> int:
    """
    Decrement stock for every item in a single UPDATE.

    Rows whose stock is below the requested quantity do not match, so the
    returned row count tells whether every decrement applied.
    """
    enough_stock = Q()
    new_stock = []
    for item in items:
        enough_stock |= Q(pk=item['product'], stock__gte=item['quantity'])
        new_stock.append(When(pk=item['product'], then=F('stock') - Value(item['quantity'])))

    return Product.objects.filter(enough_stock).update(
        stock=Case(*new_stock, default=F('stock'), output_field=IntegerField()),
        updated_at=timezone.now()
    )


def place_order(customer: Customer, data: Dict) -> Order:
    """
    Place one order. Must run inside a transaction (see place_orders).

    Raises:
        ValidationFailed: Missing fields, unknown store or products,
            insufficient stock
    """
    validate_order_data(data)

    try:
        total_amount = Decimal(str(data['total_amount']))
    except (InvalidOperation, ValueError):
        raise ValidationFailed("total_amount must be a number")
    if total_amount < 0:
        raise ValidationFailed("total_amount must not be negative")

    store_id = data['store']
    try:
        store = Store.objects.get(pk=store_id, is_active=True)
    except (Store.DoesNotExist, ValueError, TypeError):
        raise ValidationFailed(f"Store {store_id} not found")

    items = data['items']
    product_ids = [item['product'] for item in items]

    # Resolve products scoped to the claimed store
    products = {
        p.pk: p for p in Product.objects.filter(pk__in=product_ids, store=store)
    }
    missing_products = [pid for pid in product_ids if pid not in products]
    if missing_products:
        raise ValidationFailed(
            f"One or more products do not exist in store {store.pk}: "
            f"{', '.join(str(pid) for pid in missing_products)}"
        )

    for item in items:
        product = products[item['product']]
        if product.status != Product.Status.ACTIVE:
            raise ValidationFailed(f"Product {product.name} is not available")
        if product.stock < item['quantity']:
            raise InsufficientStockError(product.name, item['quantity'], product.stock)

    if _decrement_stock(items) != len(items):
        # Another order consumed the stock between the check and the update
        fresh = Product.objects.in_bulk(product_ids)
        for item in items:
            product = fresh[item['product']]
            if product.stock < item['quantity']:
                raise InsufficientStockError(product.name, item['quantity'], product.stock)
        raise ValidationFailed("Stock changed while placing the order, please retry")

    snapshot = data['customer']
    order = Order.objects.create(
        store=store,
        customer=customer,
        customer_name=snapshot['name'],
        customer_email=snapshot['email'],
        customer_phone=snapshot.get('phone') or '',
        shipping_address=snapshot['shipping_address'],
        billing_address=snapshot.get('billing_address') or '',
        total_amount=total_amount,
        payment_method=data['payment_method'],
        notes=data.get('notes') or '',
        status=Order.Status.PENDING,
        payment_status=Order.PaymentStatus.PENDING,
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product=products[item['product']],
            quantity=item['quantity'],
            unit_price=products[item['product']].price
        )
        for item in items
    ])

    items_total = sum(
        (products[item['product']].price * item['quantity'] for item in items),
        Decimal('0.00')
    )
    if items_total != total_amount:
        logger.warning(
            f"Order {order.order_number}: submitted total {total_amount} "
            f"differs from item total {items_total}"
        )

    logger.info(
        f"Order {order.order_number} placed at store #{store.pk}: "
        f"{len(items)} items, total ${total_amount}"
    )
    return order


def place_orders(customer: Customer, proposals: List[Dict]) -> List[Order]:
    """
    Place a batch of orders atomically.

    Returns:
        The created orders, in request order

    Raises:
        ValidationFailed: From the first failing proposal;
        nothing from the batch is persisted
    """
    if not proposals or not isinstance(proposals, list):
        raise ValidationFailed("Invalid order data")

    with transaction.atomic():
        orders = []
        for index, proposal in enumerate(proposals):
            try:
                orders.append(place_order(customer, proposal))
            except ValidationFailed as e:
                logger.warning(f"Order batch rejected at entry {index}: {e.message}")
                raise

        order_ids = [order.pk for order in orders]
        transaction.on_commit(lambda: _queue_confirmations(order_ids))

    return orders


def _queue_confirmations(order_ids: List[int]) -> None:
    from .tasks import send_order_confirmation

    for order_id in order_ids:
        try:
            send_order_confirmation.delay(order_id)
        except Exception as e:
            # The order is committed; a lost notification must not fail the request
            logger.error(f"Failed to queue confirmation task for order #{order_id}: {e}")


def get_order_for_reference(queryset, ref: str) -> Order:
    """
    Look an order up by numeric id or order number.

    Raises:
        NotFoundError: If no order in ``queryset`` matches
    """
    lookup = Q(order_number=ref)
    if str(ref).isdigit():
        lookup |= Q(pk=int(ref))
    order = queryset.filter(lookup).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order
