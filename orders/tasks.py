"""
Celery tasks for order processing.

Tasks:
    - send_order_confirmation: Async notification after an order is placed
"""
import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Async task queued after an order batch commits.

    Renders the confirmation for the customer snapshot stored on the order;
    delivery (email/SMS) plugs in here.

    Args:
        order_id: ID of the placed order

    Returns:
        Dict with confirmation details
    """
    from orders.models import Order

    try:
        order = Order.objects.select_related('store').prefetch_related(
            'items__product'
        ).get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    if order.status == Order.Status.CANCELLED:
        logger.warning(f"Order {order.order_number} was cancelled, skipping confirmation")
        return {
            'status': 'skipped',
            'message': f'Order {order.order_number} is cancelled'
        }

    items_summary = [
        f"  - {item.quantity}x {item.product.name} @ ${item.unit_price}"
        for item in order.items.all()
    ]

    confirmation_message = f"""
    ===============================================
    ORDER PLACED - {order.order_number}
    ===============================================
    Customer: {order.customer_name} <{order.customer_email}>
    Store: {order.store.name}
    Ship to: {order.shipping_address}
    Payment: {order.payment_method} ({order.payment_status})
    Total: ${order.total_amount}

    Items:
    {chr(10).join(items_summary)}

    Created: {order.created_at.strftime('%Y-%m-%d %H:%M:%S')}
    ===============================================
    """

    logger.info(confirmation_message)

    return {
        'status': 'success',
        'order_id': order.id,
        'order_number': order.order_number,
        'message': f'Confirmation sent to {order.customer_email}'
    }
