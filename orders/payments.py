"""
Payment gateway integration.

The gateway is configured through settings.PAYMENT_GATEWAY:

    PAYMENT_GATEWAY = {
        'BACKEND': 'orders.payments.HmacPaymentGateway',
        'OPTIONS': {'secret': '...'},
    }

Any backend implementing ``PaymentGateway`` can be plugged in.
"""
import hashlib
import hmac
import logging
import secrets

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from core.exceptions import NotFoundError, ValidationFailed
from .models import Order, Payment

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Capability the order flow needs from a payment provider."""

    def create_order(self, order: Order) -> str:
        """Register the order with the provider; returns its gateway order id."""
        raise NotImplementedError

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        raise NotImplementedError


class HmacPaymentGateway(PaymentGateway):
    """
    Gateway whose checkout signs ``{gateway_order_id}|{gateway_payment_id}``
    with HMAC-SHA256 under a shared secret.
    """

    def __init__(self, secret: str = ''):
        self.secret = secret

    def create_order(self, order: Order) -> str:
        return f"gw_{secrets.token_hex(10)}"

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        message = f"{gateway_order_id}|{gateway_payment_id}".encode()
        return hmac.new(self.secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        if not self.secret:
            logger.error("Payment gateway secret is not configured; rejecting signature")
            return False
        expected = self.sign(gateway_order_id, gateway_payment_id)
        return hmac.compare_digest(expected, signature or '')


def get_payment_gateway() -> PaymentGateway:
    config = settings.PAYMENT_GATEWAY
    gateway_class = import_string(config['BACKEND'])
    return gateway_class(**config.get('OPTIONS', {}))


def start_payment(order: Order, gateway: PaymentGateway = None) -> Payment:
    """Create a pending payment for an order that is not yet paid."""
    if order.payment_status == Order.PaymentStatus.PAID:
        raise ValidationFailed("Order is already paid")
    if order.status == Order.Status.CANCELLED:
        raise ValidationFailed("Order is cancelled")

    gateway = gateway or get_payment_gateway()
    payment = Payment.objects.create(
        order=order,
        gateway_order_id=gateway.create_order(order),
        amount=order.total_amount,
    )
    logger.info(f"Payment {payment.gateway_order_id} started for {order.order_number}")
    return payment


def verify_payment(order: Order, gateway_order_id: str, gateway_payment_id: str,
                   signature: str, gateway: PaymentGateway = None) -> Payment:
    """
    Check the gateway signature for a payment of ``order``.

    Mismatch marks the payment failed; a match completes it and marks the
    order paid.

    Raises:
        NotFoundError: No payment with this gateway order id for the order
        ValidationFailed: Signature mismatch
    """
    try:
        payment = Payment.objects.get(order=order, gateway_order_id=gateway_order_id)
    except Payment.DoesNotExist:
        raise NotFoundError("Payment not found")

    gateway = gateway or get_payment_gateway()
    payment.gateway_payment_id = gateway_payment_id
    payment.gateway_signature = signature

    if not gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
        payment.status = Payment.Status.FAILED
        payment.save(update_fields=['gateway_payment_id', 'gateway_signature', 'status', 'updated_at'])
        logger.warning(f"Payment {gateway_order_id} for {order.order_number}: invalid signature")
        raise ValidationFailed("Invalid payment signature")

    with transaction.atomic():
        payment.status = Payment.Status.COMPLETED
        payment.save(update_fields=['gateway_payment_id', 'gateway_signature', 'status', 'updated_at'])
        Order.objects.filter(pk=order.pk).update(payment_status=Order.PaymentStatus.PAID)

    order.payment_status = Order.PaymentStatus.PAID
    logger.info(f"Payment {gateway_order_id} completed for {order.order_number}")
    return payment
