"""
Tests for catalog endpoints: products, stores and categories.
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from accounts.models import StoreAdmin
from catalog.models import Category, Product, Store
from catalog.services import weekly_best_sellers
from core.testing import (
    auth_client,
    fast_test_settings,
    make_category,
    make_customer,
    make_product,
    make_store,
    make_store_admin,
)
from orders.models import Order, OrderItem


@fast_test_settings
class ProductAPITestCase(TestCase):

    def setUp(self):
        self.store = make_store()
        self.dairy = make_category(name='Dairy')
        self.milk = make_product(self.store, name='Milk', price=Decimal('2.00'), categories=[self.dairy])
        self.cheese = make_product(self.store, name='Cheese', price=Decimal('8.00'), categories=[self.dairy])
        self.soap = make_product(self.store, name='Soap', price=Decimal('3.00'), status=Product.Status.INACTIVE)

    def test_list_defaults_to_active(self):
        response = self.client.get('/api/products/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['total'], 2)

    def test_filters_and_sorting(self):
        response = self.client.get('/api/products/', {
            'min_price': '1', 'max_price': '5', 'sort_by': 'price', 'order': 'asc'
        })

        self.assertEqual([p['name'] for p in response.json()['results']], ['Milk'])

    def test_non_finite_price_filters_ignored(self):
        for value in ('NaN', 'Infinity', '-Infinity', 'sNaN'):
            response = self.client.get('/api/products/', {'min_price': value, 'max_price': value})

            self.assertEqual(response.status_code, 200, value)
            self.assertEqual(response.json()['total'], 2)

    def test_keyword_search(self):
        response = self.client.get('/api/products/', {'q': 'chee'})

        self.assertEqual([p['name'] for p in response.json()['results']], ['Cheese'])

    def test_pagination(self):
        response = self.client.get('/api/products/', {'limit': 1, 'page': 2, 'sort_by': 'name', 'order': 'asc'})

        data = response.json()
        self.assertEqual(data['pages'], 2)
        self.assertEqual(data['page'], 2)
        self.assertEqual(data['results'][0]['name'], 'Milk')

    def test_detail_has_store(self):
        response = self.client.get(f'/api/products/{self.milk.pk}/')

        self.assertEqual(response.json()['store']['id'], self.store.pk)

    def test_by_category_name_or_id(self):
        by_name = self.client.get('/api/products/category/dairy/')
        by_id = self.client.get(f'/api/products/category/{self.dairy.pk}/')

        self.assertEqual(by_name.json()['total'], 2)
        self.assertEqual(by_id.json()['total'], 2)

    def test_unknown_category(self):
        response = self.client.get('/api/products/category/nothing/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Category Not Found')

    def test_related_excludes_self(self):
        response = self.client.get(f'/api/products/{self.milk.pk}/related/')

        self.assertEqual([p['id'] for p in response.json()], [self.cheese.pk])

    def test_other_stores_same_sku(self):
        other = make_product(make_store(), sku=self.milk.sku, price=Decimal('1.80'))

        response = self.client.get(f'/api/products/{self.milk.pk}/other-stores/')

        self.assertEqual([p['id'] for p in response.json()['results']], [other.pk])

    def test_owner_creates_product_in_own_store(self):
        admin = make_store_admin()
        store = make_store(owner=admin)

        response = auth_client(admin).post('/api/products/', {
            'name': 'Butter',
            'price': '4.00',
            'stock': 20,
            'sku': 'BUT-1',
            'weight': '0.250',
            'category_ids': [self.dairy.pk],
        }, format='json')

        self.assertEqual(response.status_code, 201)
        product = Product.objects.get(name='Butter')
        self.assertEqual(product.store, store)

    def test_stock_not_updatable(self):
        admin = self.store.owner

        response = auth_client(admin).patch(f'/api/products/{self.milk.pk}/', {
            'stock': 999, 'price': '2.50'
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.milk.refresh_from_db()
        self.assertEqual(self.milk.stock, 100)
        self.assertEqual(self.milk.price, Decimal('2.50'))

    def test_cannot_update_other_stores_product(self):
        admin = make_store_admin()
        make_store(owner=admin)

        response = auth_client(admin).patch(f'/api/products/{self.milk.pk}/', {'price': '0.01'}, format='json')

        self.assertEqual(response.status_code, 404)

    def test_customer_cannot_create_product(self):
        response = auth_client(make_customer()).post('/api/products/', {'name': 'X'}, format='json')

        self.assertEqual(response.status_code, 403)


@fast_test_settings
class WeeklyBestSellersTestCase(TestCase):

    def setUp(self):
        self.store = make_store()
        self.customer = make_customer()
        self.apples = make_product(self.store, name='Apples')
        self.pears = make_product(self.store, name='Pears')

    def order(self, product, quantity, **fields):
        order = Order.objects.create(
            store=self.store,
            customer=self.customer,
            customer_name='C',
            customer_email='c@example.com',
            shipping_address='Somewhere',
            payment_method='cod',
            **fields
        )
        OrderItem.objects.create(order=order, product=product, quantity=quantity, unit_price=product.price)
        return order

    def test_sums_recent_quantities(self):
        self.order(self.apples, 3)
        self.order(self.apples, 2)
        self.order(self.pears, 1)

        ranking = {p.name: p.units_sold for p in weekly_best_sellers()}

        self.assertEqual(ranking, {'Apples': 5, 'Pears': 1})

    def test_ignores_old_and_cancelled_orders(self):
        self.order(self.apples, 3, created_at=timezone.now() - timedelta(days=8))
        self.order(self.pears, 4, status=Order.Status.CANCELLED)

        self.assertFalse(weekly_best_sellers().exists())

    def test_endpoint(self):
        self.order(self.pears, 2)

        response = self.client.get('/api/products/weekly-best-selling/')

        self.assertEqual(response.json()['results'][0]['units_sold'], 2)


@fast_test_settings
class StoreAPITestCase(TestCase):

    store_data = {
        'name': 'Green Basket',
        'type': 'grocery',
        'contact_number': '555-0100',
        'opening_time': '08:00',
        'closing_time': '22:00',
        'description': 'Fresh produce daily',
    }

    def test_create_store_promotes_owner(self):
        admin = make_store_admin()

        response = auth_client(admin).post('/api/stores/', self.store_data, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['message'], 'Store created successfully')
        self.assertEqual(len(response.data['store']['store_code']), 6)
        admin.refresh_from_db()
        self.assertEqual(admin.role, StoreAdmin.Role.STORE_OWNER)

    def test_second_store_for_admin_conflicts(self):
        admin = make_store_admin()
        make_store(owner=admin)

        response = auth_client(admin).post('/api/stores/', self.store_data, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['message'], 'Store already exists for this user')

    def test_duplicate_name_conflicts(self):
        make_store(name='Green Basket')

        response = auth_client(make_store_admin()).post('/api/stores/', self.store_data, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['message'], 'Store with this name already exists')

    def test_top_stores_rated_first(self):
        unrated = make_store()
        good = make_store(rating=Decimal('4.50'))
        better = make_store(rating=Decimal('4.90'))

        response = self.client.get('/api/stores/top/')

        self.assertEqual([s['id'] for s in response.json()['results']], [better.pk, good.pk, unrated.pk])

    def test_store_products(self):
        store = make_store()
        make_product(store, name='Beta')
        make_product(store, name='Alpha')

        response = self.client.get(f'/api/stores/{store.pk}/products/')

        self.assertEqual([p['name'] for p in response.json()['results']], ['Alpha', 'Beta'])

    def test_unknown_store_products(self):
        response = self.client.get('/api/stores/99999/products/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Store not found')


@fast_test_settings
class CategoryAPITestCase(TestCase):

    def test_list_is_public(self):
        make_category(name='Bakery', is_featured=True)
        make_category(name='Frozen')

        self.assertEqual(self.client.get('/api/categories/').json()['total'], 2)
        self.assertEqual(self.client.get('/api/categories/featured/').json()['total'], 1)

    def test_store_admin_creates_category(self):
        response = auth_client(make_store_admin()).post('/api/categories/', {'name': 'Snacks'}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertTrue(Category.objects.filter(name='Snacks').exists())

    def test_anonymous_cannot_create(self):
        response = self.client.post('/api/categories/', {'name': 'Snacks'}, content_type='application/json')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['message'], 'Authentication required')


class SeedDataCommandTestCase(TestCase):

    def test_seed_creates_catalog(self):
        out = StringIO()
        call_command('seed_data', '--stores', '2', '--products', '3', stdout=out)

        self.assertEqual(Store.objects.count(), 2)
        self.assertEqual(Product.objects.count(), 6)
        self.assertTrue(Category.objects.exists())
        self.assertIn('Seeding complete', out.getvalue())
