"""
Tests for order placement, fulfillment and payment.

Test Cases:
1. Order placed with sufficient stock, stock decremented
2. Insufficient stock rejects the order, no stock deducted
3. A failing order rolls back the whole batch
4. Order numbers follow ORD-YYMM-RRRR and never collide
5. Store admin and courier transition rules
6. Concurrent pickups / stale status updates cannot both win
7. Payment start and signature verification
8. Concurrent orders cannot oversell stock
"""
import re
import threading
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

from django.db import connection
from django.test import TestCase, TransactionTestCase

from core.exceptions import ConflictError, ValidationFailed
from core.testing import (
    auth_client,
    fast_test_settings,
    make_courier,
    make_customer,
    make_product,
    make_store,
    make_store_admin,
)
from catalog.models import Product
from orders.fulfillment import (
    Transition,
    courier_transition,
    store_transition,
    update_status_as_courier,
    update_status_as_store,
)
from orders.models import ORDER_NUMBER_ATTEMPTS, Order, OrderItem, Payment, generate_order_number
from orders.payments import HmacPaymentGateway, start_payment, verify_payment
from orders.services import InsufficientStockError, place_orders
from orders.tasks import send_order_confirmation


def proposal(store, items, total='0.00', **overrides):
    data = {
        'store': store.pk,
        'customer': {
            'name': 'Jane Shopper',
            'email': 'jane@example.com',
            'phone': '555-0111',
            'shipping_address': '1 Elm Street',
        },
        'items': [{'product': product.pk, 'quantity': quantity} for product, quantity in items],
        'total_amount': total,
        'payment_method': 'cod',
    }
    data.update(overrides)
    return data


def make_order(store, customer, **fields):
    fields.setdefault('customer_name', customer.full_name)
    fields.setdefault('customer_email', customer.email)
    fields.setdefault('shipping_address', '1 Elm Street')
    fields.setdefault('payment_method', 'cod')
    fields.setdefault('total_amount', Decimal('20.00'))
    return Order.objects.create(store=store, customer=customer, **fields)


@fast_test_settings
class OrderPlacementTestCase(TestCase):
    """Test cases for order placement logic."""

    def setUp(self):
        self.customer = make_customer()
        self.store = make_store()
        self.product1 = make_product(self.store, name='Milk', price=Decimal('10.00'), stock=100)
        self.product2 = make_product(self.store, name='Bread', price=Decimal('25.00'), stock=50)
        self.product3 = make_product(self.store, name='Eggs', price=Decimal('15.50'), stock=10)

    def test_order_placed_with_sufficient_stock(self):
        """
        Given: Products with sufficient stock
        When: Placing an order within stock limits
        Then: Order is pending, items priced at current price, stock deducted
        """
        orders = place_orders(self.customer, [
            proposal(self.store, [(self.product1, 5), (self.product2, 3)], total='125.00')
        ])

        self.assertEqual(len(orders), 1)
        order = orders[0]
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal('125.00'))
        self.assertEqual(order.customer_name, 'Jane Shopper')
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.items_total, Decimal('125.00'))
        self.assertRegex(order.order_number, r'^ORD-\d{4}-\d{4}$')

        item = order.items.get(product=self.product2)
        self.assertEqual(item.unit_price, Decimal('25.00'))

        self.product1.refresh_from_db()
        self.product2.refresh_from_db()
        self.assertEqual(self.product1.stock, 95)
        self.assertEqual(self.product2.stock, 47)

    def test_order_with_exact_stock(self):
        place_orders(self.customer, [proposal(self.store, [(self.product3, 10)], total='155.00')])

        self.product3.refresh_from_db()
        self.assertEqual(self.product3.stock, 0)

    def test_insufficient_stock_rejects_order(self):
        """
        Given: Eggs have only 10 units
        When: Requesting 15 units
        Then: The order fails naming the product, and no stock is deducted
        """
        with self.assertRaises(InsufficientStockError) as context:
            place_orders(self.customer, [
                proposal(self.store, [(self.product1, 5), (self.product3, 15)])
            ])

        self.assertIn('Insufficient quantity for product Eggs', context.exception.message)
        self.assertEqual(context.exception.status_code, 400)

        self.product1.refresh_from_db()
        self.product3.refresh_from_db()
        self.assertEqual(self.product1.stock, 100)
        self.assertEqual(self.product3.stock, 10)
        self.assertFalse(Order.objects.exists())

    def test_failing_order_rolls_back_whole_batch(self):
        """
        Given: A batch whose second order exceeds stock
        When: Placing the batch
        Then: The first order and its stock decrement are rolled back too
        """
        other_store = make_store()
        other_product = make_product(other_store, stock=1)

        with self.assertRaises(ValidationFailed):
            place_orders(self.customer, [
                proposal(self.store, [(self.product1, 5)]),
                proposal(other_store, [(other_product, 2)]),
            ])

        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock, 100)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderItem.objects.exists())

    def test_later_proposals_not_attempted_after_failure(self):
        with self.assertRaises(ValidationFailed):
            place_orders(self.customer, [
                proposal(self.store, [(self.product3, 50)]),
                proposal(self.store, [(self.product1, 1)]),
            ])

        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock, 100)

    def test_batch_with_orders_for_two_stores(self):
        other_store = make_store()
        other_product = make_product(other_store, price=Decimal('3.00'), stock=5)

        orders = place_orders(self.customer, [
            proposal(self.store, [(self.product1, 1)], total='10.00'),
            proposal(other_store, [(other_product, 2)], total='6.00'),
        ])

        self.assertEqual([o.store_id for o in orders], [self.store.pk, other_store.pk])
        self.assertNotEqual(orders[0].order_number, orders[1].order_number)

    def test_product_from_another_store_rejected(self):
        other_product = make_product(make_store())

        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [proposal(self.store, [(other_product, 1)])])

        self.assertIn(str(other_product.pk), context.exception.message)
        other_product.refresh_from_db()
        self.assertEqual(other_product.stock, 100)

    def test_unknown_store_rejected(self):
        data = proposal(self.store, [(self.product1, 1)])
        data['store'] = 99999

        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [data])

        self.assertEqual(context.exception.message, 'Store 99999 not found')
        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock, 100)
        self.assertFalse(Order.objects.exists())

    def test_validation_error_empty_items(self):
        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [proposal(self.store, [])])

        self.assertEqual(context.exception.message, 'Items are required')

    def test_validation_error_missing_fields(self):
        data = proposal(self.store, [(self.product1, 1)])
        del data['payment_method']

        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [data])

        self.assertIn('payment_method', context.exception.message)

    def test_validation_error_missing_shipping_address(self):
        data = proposal(self.store, [(self.product1, 1)])
        data['customer']['shipping_address'] = ''

        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [data])

        self.assertIn('shipping_address', context.exception.message)

    def test_validation_error_invalid_quantity(self):
        with self.assertRaises(ValidationFailed):
            place_orders(self.customer, [proposal(self.store, [(self.product1, 0)])])

    def test_validation_error_duplicate_products(self):
        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [
                proposal(self.store, [(self.product1, 5), (self.product1, 3)])
            ])

        self.assertIn('duplicate', context.exception.message.lower())

    def test_inactive_product_rejected(self):
        Product.objects.filter(pk=self.product1.pk).update(status=Product.Status.INACTIVE)

        with self.assertRaises(ValidationFailed) as context:
            place_orders(self.customer, [proposal(self.store, [(self.product1, 1)])])

        self.assertEqual(context.exception.message, 'Product Milk is not available')
        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock, 100)

    def test_total_mismatch_is_stored_and_logged(self):
        with self.assertLogs('orders.services', level='WARNING') as logs:
            orders = place_orders(self.customer, [
                proposal(self.store, [(self.product1, 2)], total='1.00')
            ])

        self.assertEqual(orders[0].total_amount, Decimal('1.00'))
        self.assertTrue(any('differs from item total 20.00' in line for line in logs.output))

    def test_confirmation_queued_after_commit(self):
        with patch('orders.services._queue_confirmations') as queue:
            with self.captureOnCommitCallbacks(execute=True):
                orders = place_orders(self.customer, [
                    proposal(self.store, [(self.product1, 1)], total='10.00')
                ])

        queue.assert_called_once_with([orders[0].pk])

    def test_no_confirmation_for_failed_batch(self):
        with patch('orders.services._queue_confirmations') as queue:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                with self.assertRaises(ValidationFailed):
                    place_orders(self.customer, [proposal(self.store, [(self.product3, 99)])])

        self.assertEqual(callbacks, [])
        queue.assert_not_called()


@fast_test_settings
class OrderModelTestCase(TestCase):
    """Test cases for Order model properties."""

    def setUp(self):
        self.customer = make_customer()
        self.store = make_store()
        self.product = make_product(self.store, price=Decimal('100.00'))

    def test_order_number_format(self):
        number = generate_order_number(datetime(2024, 3, 5))
        self.assertTrue(re.fullmatch(r'ORD-2403-\d{4}', number))

    def test_order_number_redrawn_when_taken(self):
        numbers = ['ORD-2401-0001', 'ORD-2401-0001', 'ORD-2401-0002']
        with patch('orders.models.generate_order_number', side_effect=numbers):
            first = make_order(self.store, self.customer)
            second = make_order(self.store, self.customer)

        self.assertEqual(first.order_number, 'ORD-2401-0001')
        self.assertEqual(second.order_number, 'ORD-2401-0002')

    def test_order_number_gives_up_when_exhausted(self):
        make_order(self.store, self.customer, order_number='ORD-2401-0001')

        with patch('orders.models.generate_order_number', return_value='ORD-2401-0001') as draw:
            with self.assertRaises(ConflictError):
                make_order(self.store, self.customer)

        self.assertEqual(draw.call_count, ORDER_NUMBER_ATTEMPTS)
        self.assertEqual(Order.objects.count(), 1)

    def test_order_item_subtotal(self):
        order = make_order(self.store, self.customer)
        item = OrderItem.objects.create(
            order=order,
            product=self.product,
            quantity=3,
            unit_price=Decimal('25.50')
        )

        self.assertEqual(item.subtotal, Decimal('76.50'))
        self.assertEqual(order.item_count, 1)


class TransitionRulesTestCase(TestCase):
    """The transition table, decided without touching the database."""

    def test_store_path(self):
        self.assertTrue(store_transition('pending', 'order_confirmed').allowed)
        self.assertTrue(store_transition('order_confirmed', 'being_packed').allowed)
        self.assertTrue(store_transition('being_packed', 'ready_for_pickup').allowed)
        self.assertTrue(store_transition('being_packed', 'cancelled').allowed)

    def test_store_cannot_skip_or_reverse(self):
        self.assertFalse(store_transition('pending', 'being_packed').allowed)
        self.assertFalse(store_transition('order_confirmed', 'pending').allowed)
        self.assertFalse(store_transition('ready_for_pickup', 'cancelled').allowed)
        self.assertFalse(store_transition('delivered', 'cancelled').allowed)

    def test_store_cancel_fails_payment(self):
        transition = store_transition('pending', 'cancelled')
        self.assertEqual(transition.changes, {'status': 'cancelled', 'payment_status': 'failed'})

    def test_courier_rejects_status_outside_allowed_set(self):
        transition = courier_transition('ready_for_pickup', None, 'being_packed', 1)

        self.assertFalse(transition.allowed)
        self.assertEqual(
            transition.reason,
            'Invalid status. Allowed statuses are: out_for_delivery, delivered, cancelled'
        )

    def test_courier_requires_status(self):
        self.assertEqual(courier_transition('ready_for_pickup', None, '', 1).reason, 'Status is required')

    def test_pickup_assigns_courier(self):
        transition = courier_transition('ready_for_pickup', None, 'out_for_delivery', 7)

        self.assertEqual(transition, Transition(
            allowed=True,
            changes={'status': 'out_for_delivery', 'courier_id': 7},
            require_unassigned=True,
        ))

    def test_pickup_rejected_when_already_picked_up(self):
        transition = courier_transition('out_for_delivery', 3, 'out_for_delivery', 7)
        self.assertEqual(transition.reason, 'Order already picked up')

    def test_pickup_rejected_when_courier_assigned(self):
        transition = courier_transition('ready_for_pickup', 3, 'out_for_delivery', 7)
        self.assertEqual(transition.reason, 'Order already assigned to a delivery person')

    def test_delivered_marks_paid(self):
        transition = courier_transition('out_for_delivery', 7, 'delivered', 7)
        self.assertEqual(transition.changes['payment_status'], 'paid')

    def test_cancelled_marks_failed(self):
        transition = courier_transition('out_for_delivery', 7, 'cancelled', 7)
        self.assertEqual(transition.changes['payment_status'], 'failed')


@fast_test_settings
class ApplyTransitionTestCase(TestCase):
    """Conditional updates guarding status changes."""

    def setUp(self):
        self.store = make_store()
        self.order = make_order(self.store, make_customer(), status=Order.Status.READY_FOR_PICKUP)

    def test_second_pickup_of_stale_copy_loses(self):
        first_courier = make_courier()
        second_courier = make_courier()
        stale = Order.objects.get(pk=self.order.pk)

        update_status_as_courier(self.order, 'out_for_delivery', first_courier.pk)

        with self.assertRaises(ValidationFailed) as context:
            update_status_as_courier(stale, 'out_for_delivery', second_courier.pk)

        self.assertEqual(context.exception.message, 'Order already assigned to a delivery person')
        self.order.refresh_from_db()
        self.assertEqual(self.order.courier_id, first_courier.pk)

    def test_stale_store_update_rejected(self):
        order = make_order(self.store, make_customer())
        stale = Order.objects.get(pk=order.pk)
        Order.objects.filter(pk=order.pk).update(status=Order.Status.CANCELLED)

        with self.assertRaises(ValidationFailed) as context:
            update_status_as_store(stale, 'order_confirmed')

        self.assertEqual(context.exception.message, 'Order status changed, please retry')
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.CANCELLED)

    def test_rejected_transition_leaves_order_unchanged(self):
        with self.assertRaises(ValidationFailed):
            update_status_as_store(self.order, 'order_confirmed')

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.READY_FOR_PICKUP)


@fast_test_settings
class OrderAPITestCase(TestCase):
    """Customer-facing order endpoints."""

    def setUp(self):
        self.customer = make_customer()
        self.client = auth_client(self.customer)
        self.store = make_store()
        self.product = make_product(self.store, price=Decimal('4.50'), stock=10)

    def test_place_orders(self):
        response = self.client.post('/api/orders/', {
            'orders': [proposal(self.store, [(self.product, 2)], total='9.00')]
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['message'], 'Orders placed successfully')
        order = response.data['orders'][0]
        self.assertEqual(order['status'], 'pending')
        self.assertEqual(order['items'][0]['quantity'], 2)
        self.assertEqual(order['store']['id'], self.store.pk)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_place_orders_insufficient_stock_envelope(self):
        response = self.client.post('/api/orders/', {
            'orders': [proposal(self.store, [(self.product, 11)])]
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['success'], False)
        self.assertEqual(response.data['error'], True)
        self.assertEqual(response.data['status'], 400)
        self.assertIn('Insufficient quantity for product', response.data['message'])

    def test_place_orders_missing_field_names_it(self):
        data = proposal(self.store, [(self.product, 1)])
        del data['store']

        response = self.client.post('/api/orders/', {'orders': [data]}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'orders.0.store: This field is required.')

    def test_place_orders_requires_customer(self):
        courier_client = auth_client(make_courier())
        response = courier_client.post('/api/orders/', {'orders': []}, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Access Denied')

    def test_place_orders_unauthenticated(self):
        self.client.credentials()
        response = self.client.post('/api/orders/', {'orders': []}, format='json')

        self.assertEqual(response.status_code, 401)

    def test_list_only_own_orders(self):
        own = make_order(self.store, self.customer)
        make_order(self.store, make_customer())

        response = self.client.get('/api/orders/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['results'][0]['order_number'], own.order_number)

    def test_detail_by_id_and_order_number(self):
        order = make_order(self.store, self.customer)

        by_id = self.client.get(f'/api/orders/{order.pk}/')
        by_number = self.client.get(f'/api/orders/{order.order_number}/')

        self.assertEqual(by_id.status_code, 200)
        self.assertEqual(by_number.data['order']['id'], order.pk)

    def test_detail_of_other_customers_order_not_found(self):
        order = make_order(self.store, make_customer())

        response = self.client.get(f'/api/orders/{order.pk}/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Order not found')


@fast_test_settings
class StoreOrderAPITestCase(TestCase):
    """Store admin dashboard and status endpoints."""

    def setUp(self):
        self.admin = make_store_admin()
        self.store = make_store(owner=self.admin)
        self.client = auth_client(self.admin)
        self.customer = make_customer()

    def test_dashboard_lists_own_store_only(self):
        own = make_order(self.store, self.customer)
        make_order(make_store(), self.customer)

        response = self.client.get('/api/orders/all/dashboard/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([o['id'] for o in response.data['results']], [own.pk])

    def test_dashboard_detail_by_order_number(self):
        order = make_order(self.store, self.customer)

        response = self.client.get(f'/api/orders/{order.order_number}/dashboard/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['id'], order.pk)

    def test_confirm_order(self):
        order = make_order(self.store, self.customer)

        response = self.client.put(f'/api/orders/{order.pk}/status/', {'status': 'order_confirmed'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['status'], 'order_confirmed')

    def test_invalid_store_transition(self):
        order = make_order(self.store, self.customer)

        response = self.client.put(f'/api/orders/{order.pk}/status/', {'status': 'delivered'}, format='json')

        self.assertEqual(response.status_code, 400)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)

    def test_cannot_update_other_store_order(self):
        order = make_order(make_store(), self.customer)

        response = self.client.put(f'/api/orders/{order.pk}/status/', {'status': 'order_confirmed'}, format='json')

        self.assertEqual(response.status_code, 404)

    def test_admin_without_store_denied(self):
        client = auth_client(make_store_admin())

        response = client.get('/api/orders/all/dashboard/')

        self.assertEqual(response.status_code, 403)


@fast_test_settings
class DeliveryOrderAPITestCase(TestCase):
    """Courier endpoints."""

    def setUp(self):
        self.courier = make_courier()
        self.client = auth_client(self.courier)
        self.store = make_store()
        self.customer = make_customer()

    def test_pickup_assigns_requesting_courier(self):
        order = make_order(self.store, self.customer, status=Order.Status.READY_FOR_PICKUP)

        response = self.client.put(
            f'/api/delivery/orders/{order.pk}/status/', {'status': 'out_for_delivery'}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.OUT_FOR_DELIVERY)
        self.assertEqual(order.courier_id, self.courier.pk)

    def test_second_courier_cannot_pick_up(self):
        order = make_order(self.store, self.customer, status=Order.Status.READY_FOR_PICKUP)
        self.client.put(f'/api/delivery/orders/{order.pk}/status/', {'status': 'out_for_delivery'}, format='json')

        other = auth_client(make_courier())
        response = other.put(
            f'/api/delivery/orders/{order.pk}/status/', {'status': 'out_for_delivery'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Order already picked up')
        order.refresh_from_db()
        self.assertEqual(order.courier_id, self.courier.pk)

    def test_invalid_status_leaves_order_unchanged(self):
        order = make_order(self.store, self.customer, status=Order.Status.READY_FOR_PICKUP)

        response = self.client.put(
            f'/api/delivery/orders/{order.pk}/status/', {'status': 'being_packed'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data['message'],
            'Invalid status. Allowed statuses are: out_for_delivery, delivered, cancelled'
        )
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.READY_FOR_PICKUP)

    def test_delivered_sets_payment_paid(self):
        order = make_order(self.store, self.customer, status=Order.Status.OUT_FOR_DELIVERY, courier=self.courier)

        response = self.client.put(f'/api/delivery/orders/{order.pk}/status/', {'status': 'delivered'}, format='json')

        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, Order.PaymentStatus.PAID)

    def test_unknown_order(self):
        response = self.client.put('/api/delivery/orders/99999/status/', {'status': 'delivered'}, format='json')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Order not found')

    def test_customer_token_denied(self):
        client = auth_client(self.customer)

        response = client.get('/api/delivery/orders/')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Access Denied')

    def test_list_hides_unconfirmed_orders(self):
        make_order(self.store, self.customer, status=Order.Status.PENDING)
        make_order(self.store, self.customer, status=Order.Status.ORDER_CONFIRMED)
        ready = make_order(self.store, self.customer, status=Order.Status.READY_FOR_PICKUP)

        response = self.client.get('/api/delivery/orders/')

        self.assertEqual([o['id'] for o in response.data['results']], [ready.pk])

    def test_out_for_delivery_filter_shows_own_deliveries(self):
        own = make_order(self.store, self.customer, status=Order.Status.OUT_FOR_DELIVERY, courier=self.courier)
        make_order(self.store, self.customer, status=Order.Status.OUT_FOR_DELIVERY, courier=make_courier())

        response = self.client.get('/api/delivery/orders/', {'status': 'out_for_delivery'})

        self.assertEqual([o['id'] for o in response.data['results']], [own.pk])

    def test_detail_excludes_pending(self):
        order = make_order(self.store, self.customer)

        response = self.client.get(f'/api/delivery/orders/{order.order_number}/')

        self.assertEqual(response.status_code, 404)


@fast_test_settings
class PaymentTestCase(TestCase):
    """Payment start and signature verification."""

    def setUp(self):
        self.customer = make_customer()
        self.order = make_order(make_store(), self.customer, total_amount=Decimal('42.00'))
        self.gateway = HmacPaymentGateway(secret='test-secret')

    def test_start_payment(self):
        payment = start_payment(self.order, gateway=self.gateway)

        self.assertEqual(payment.status, Payment.Status.PENDING)
        self.assertEqual(payment.amount, Decimal('42.00'))
        self.assertTrue(payment.gateway_order_id.startswith('gw_'))

    def test_valid_signature_marks_order_paid(self):
        payment = start_payment(self.order, gateway=self.gateway)
        signature = self.gateway.sign(payment.gateway_order_id, 'pay_1')

        payment = verify_payment(self.order, payment.gateway_order_id, 'pay_1', signature, gateway=self.gateway)

        self.assertEqual(payment.status, Payment.Status.COMPLETED)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PAID)

    def test_invalid_signature_marks_payment_failed(self):
        payment = start_payment(self.order, gateway=self.gateway)

        with self.assertRaises(ValidationFailed):
            verify_payment(self.order, payment.gateway_order_id, 'pay_1', 'bad', gateway=self.gateway)

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.Status.FAILED)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PENDING)

    def test_empty_secret_rejects_everything(self):
        gateway = HmacPaymentGateway(secret='')
        self.assertFalse(gateway.verify_signature('gw_1', 'pay_1', gateway.sign('gw_1', 'pay_1')))

    def test_paid_order_cannot_start_payment(self):
        Order.objects.filter(pk=self.order.pk).update(payment_status=Order.PaymentStatus.PAID)
        self.order.refresh_from_db()

        with self.assertRaises(ValidationFailed):
            start_payment(self.order, gateway=self.gateway)

    def test_payment_endpoints(self):
        client = auth_client(self.customer)
        gateway_path = 'orders.payments.get_payment_gateway'

        with patch(gateway_path, return_value=self.gateway):
            started = client.post(f'/api/orders/{self.order.pk}/payment/')
            gateway_order_id = started.data['payment']['gateway_order_id']
            verified = client.post(f'/api/orders/{self.order.pk}/verify-payment/', {
                'gateway_order_id': gateway_order_id,
                'gateway_payment_id': 'pay_9',
                'signature': self.gateway.sign(gateway_order_id, 'pay_9'),
            }, format='json')

        self.assertEqual(started.status_code, 201)
        self.assertEqual(verified.status_code, 200)
        self.assertEqual(verified.data['payment']['status'], 'completed')

    def test_verify_unknown_payment(self):
        client = auth_client(self.customer)

        response = client.post(f'/api/orders/{self.order.pk}/verify-payment/', {
            'gateway_order_id': 'gw_missing',
            'gateway_payment_id': 'pay_1',
            'signature': 'x',
        }, format='json')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Payment not found')


@fast_test_settings
class OrderConfirmationTaskTestCase(TestCase):

    def setUp(self):
        self.store = make_store()
        self.customer = make_customer()

    def test_confirmation_for_placed_order(self):
        product = make_product(self.store)
        order = place_orders(self.customer, [proposal(self.store, [(product, 1)], total='10.00')])[0]

        result = send_order_confirmation(order.pk)

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['order_number'], order.order_number)

    def test_cancelled_order_skipped(self):
        order = make_order(self.store, self.customer, status=Order.Status.CANCELLED)

        self.assertEqual(send_order_confirmation(order.pk)['status'], 'skipped')

    def test_missing_order(self):
        self.assertEqual(send_order_confirmation(99999)['status'], 'error')


@fast_test_settings
class ConcurrentOrderTestCase(TransactionTestCase):
    """
    Concurrent placement must not oversell.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.customer = make_customer()
        self.store = make_store()
        # Only 10 units available
        self.product = make_product(self.store, price=Decimal('50.00'), stock=10)

    def test_concurrent_orders_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent orders of 8 units each
        Then: At most one succeeds and stock matches the successes
        """
        results = {}

        def place(key):
            try:
                place_orders(self.customer, [proposal(self.store, [(self.product, 8)], total='400.00')])
                results[key] = 'placed'
            except Exception as e:
                # Lost the race, or the database refused the concurrent writer
                results[key] = type(e).__name__
            finally:
                connection.close()

        threads = [threading.Thread(target=place, args=(key,)) for key in ('order1', 'order2')]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        placed = sum(1 for r in results.values() if r == 'placed')
        self.product.refresh_from_db()

        self.assertLessEqual(placed, 1)
        self.assertEqual(self.product.stock, 10 - 8 * placed)
        self.assertEqual(Order.objects.count(), placed)
