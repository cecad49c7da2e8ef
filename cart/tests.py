"""
Tests for the customer cart.
"""
from decimal import Decimal

from django.test import TestCase

from cart.models import CartItem
from core.testing import auth_client, fast_test_settings, make_customer, make_product, make_store


@fast_test_settings
class CartAPITestCase(TestCase):

    def setUp(self):
        self.customer = make_customer()
        self.client = auth_client(self.customer)
        self.store = make_store()
        self.product = make_product(self.store, price=Decimal('3.25'))

    def test_add_item_snapshots_line_price(self):
        response = self.client.post('/api/carts/', {'product': self.product.pk, 'quantity': 4}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['price'], '13.00')
        self.assertEqual(response.data['product']['store']['id'], self.store.pk)

    def test_add_unknown_product(self):
        response = self.client.post('/api/carts/', {'product': 99999, 'quantity': 1}, format='json')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Product not found')

    def test_add_invalid_quantity(self):
        response = self.client.post('/api/carts/', {'product': self.product.pk, 'quantity': 0}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_list_only_own_items(self):
        CartItem.objects.create(customer=self.customer, product=self.product, quantity=1, price=Decimal('3.25'))
        CartItem.objects.create(customer=make_customer(), product=self.product, quantity=2, price=Decimal('6.50'))

        response = self.client.get('/api/carts/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['quantity'], 1)

    def test_update_quantity_reprices(self):
        item = CartItem.objects.create(customer=self.customer, product=self.product, quantity=1, price=Decimal('3.25'))

        response = self.client.put(f'/api/carts/{item.pk}/', {'quantity': 2}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['message'], 'Cart item updated successfully')
        item.refresh_from_db()
        self.assertEqual(item.price, Decimal('6.50'))

    def test_delete_item(self):
        item = CartItem.objects.create(customer=self.customer, product=self.product, quantity=1, price=Decimal('3.25'))

        response = self.client.delete(f'/api/carts/{item.pk}/')

        self.assertEqual(response.status_code, 204)
        self.assertFalse(CartItem.objects.filter(pk=item.pk).exists())

    def test_other_customers_item_not_found(self):
        item = CartItem.objects.create(customer=make_customer(), product=self.product, quantity=1, price=Decimal('3.25'))

        response = self.client.delete(f'/api/carts/{item.pk}/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['message'], 'Cart item not found')
        self.assertTrue(CartItem.objects.filter(pk=item.pk).exists())

    def test_requires_customer(self):
        response = auth_client(self.store.owner).get('/api/carts/')

        self.assertEqual(response.status_code, 403)
