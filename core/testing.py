"""
Factories and an authenticated API client shared by the app test suites.
"""
from datetime import time
from decimal import Decimal
from itertools import count

from django.test import override_settings
from rest_framework.test import APIClient

from accounts.models import Courier, Customer, StoreAdmin
from catalog.models import Category, Product, Store
from .authentication import issue_token

_sequence = count(1)

fast_test_settings = override_settings(
    PASSWORD_HASHERS=['django.contrib.auth.hashers.MD5PasswordHasher'],
    RATE_LIMIT_ENABLED=False,
)


def _account(model, password='secret123', **fields):
    n = next(_sequence)
    fields.setdefault('email', f"{model.__name__.lower()}{n}@example.com")
    fields.setdefault('full_name', f"{model.__name__} {n}")
    account = model(**fields)
    account.set_password(password)
    account.save()
    return account


def make_customer(**fields) -> Customer:
    return _account(Customer, **fields)


def make_store_admin(**fields) -> StoreAdmin:
    return _account(StoreAdmin, **fields)


def make_courier(**fields) -> Courier:
    fields.setdefault('phone', '555-0100')
    return _account(Courier, **fields)


def make_store(owner=None, **fields) -> Store:
    n = next(_sequence)
    fields.setdefault('name', f"Store {n}")
    fields.setdefault('type', Store.Type.GROCERY)
    fields.setdefault('location', f"{n} Market Street")
    fields.setdefault('opening_time', time(8, 0))
    fields.setdefault('closing_time', time(22, 0))
    fields.setdefault('contact_number', '555-0200')
    fields.setdefault('description', 'Neighbourhood grocery')
    return Store.objects.create(owner=owner or make_store_admin(), **fields)


def make_category(**fields) -> Category:
    fields.setdefault('name', f"Category {next(_sequence)}")
    return Category.objects.create(**fields)


def make_product(store, categories=(), **fields) -> Product:
    n = next(_sequence)
    fields.setdefault('name', f"Product {n}")
    fields.setdefault('price', Decimal('10.00'))
    fields.setdefault('stock', 100)
    fields.setdefault('sku', f"SKU-{n}")
    fields.setdefault('weight', Decimal('1.000'))
    product = Product.objects.create(store=store, **fields)
    if categories:
        product.categories.set(categories)
    return product


def auth_client(account) -> APIClient:
    """API client sending a bearer token for ``account``."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(account)}")
    return client
