"""
Management command to seed the database with sample data.

Generates:
- Grocery categories
- Store admins, each owning one store
- Products with stock for every store, sharing SKUs across stores so
  "other stores" comparisons have data

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from datetime import time
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.models import StoreAdmin
from catalog.models import Category, Product, Store, generate_store_code

SEED_PASSWORD = 'password123'

CATALOG = {
    'Fruits & Vegetables': ['Bananas', 'Apples', 'Tomatoes', 'Onions', 'Spinach', 'Carrots'],
    'Dairy & Eggs': ['Whole Milk', 'Greek Yogurt', 'Cheddar Cheese', 'Butter', 'Free-Range Eggs'],
    'Bakery': ['Sourdough Loaf', 'Whole Wheat Bread', 'Croissants', 'Bagels'],
    'Beverages': ['Orange Juice', 'Green Tea', 'Ground Coffee', 'Sparkling Water'],
    'Snacks': ['Potato Chips', 'Trail Mix', 'Dark Chocolate', 'Granola Bars'],
    'Pantry': ['Basmati Rice', 'Pasta', 'Olive Oil', 'Rolled Oats', 'Honey'],
    'Household': ['Dish Soap', 'Paper Towels', 'Laundry Detergent'],
    'Frozen': ['Frozen Peas', 'Ice Cream', 'Frozen Pizza'],
}

CITIES = [
    'Springfield', 'Riverside', 'Fairview', 'Madison', 'Georgetown',
    'Franklin', 'Clinton', 'Salem', 'Greenville', 'Bristol',
]


class Command(BaseCommand):
    help = 'Seed the database with sample categories, stores and products'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--stores',
            type=int,
            default=10,
            help='Number of stores to create (default: 10)',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=30,
            help='Number of products per store (default: 30)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            categories = self._create_categories()
            stores = self._create_stores(options['stores'])
            self._create_products(stores, categories, options['products'])

        self.stdout.write(self.style.SUCCESS(
            f'Seeding complete. Store admins log in with password "{SEED_PASSWORD}".'
        ))

    def _clear_data(self):
        """Clear all existing data."""
        from cart.models import CartItem
        from orders.models import Order, OrderItem, Payment

        Payment.objects.all().delete()
        OrderItem.objects.all().delete()
        Order.objects.all().delete()
        CartItem.objects.all().delete()
        Product.objects.all().delete()
        Store.objects.all().delete()
        StoreAdmin.objects.filter(email__endswith='@seed.example.com').delete()
        Category.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_categories(self):
        categories = {}
        for name in CATALOG:
            category, created = Category.objects.get_or_create(
                name=name,
                defaults={'is_featured': random.random() > 0.5}
            )
            categories[name] = category
            if created:
                self.stdout.write(f'  Created category: {name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(categories)} categories'))
        return categories

    def _create_stores(self, count):
        """Create store admins and one store each."""
        store_types = list(Store.Type)
        password = make_password(SEED_PASSWORD)
        offset = Store.objects.count()

        stores = []
        for i in range(offset, offset + count):
            city = CITIES[i % len(CITIES)]
            store_type = random.choice(store_types)

            owner = StoreAdmin.objects.create(
                email=f'owner{i + 1}@seed.example.com',
                password=password,
                full_name=f'{city} Owner {i + 1}',
                city=city,
                role=StoreAdmin.Role.STORE_OWNER,
            )
            stores.append(Store.objects.create(
                owner=owner,
                name=f'{city} {store_type.label} #{i + 1}',
                type=store_type,
                location=f'{random.randint(100, 9999)} Main Street, {city}',
                opening_time=time(random.randint(6, 9), 0),
                closing_time=time(random.randint(20, 23), 0),
                contact_number=f'555-{random.randint(1000, 9999)}',
                rating=Decimal(str(round(random.uniform(3, 5), 1))),
                description=f'Your neighbourhood {store_type.label.lower()} in {city}.',
                store_code=generate_store_code(),
            ))

        self.stdout.write(self.style.SUCCESS(f'Created {len(stores)} stores'))
        return stores

    def _create_products(self, stores, categories, per_store):
        """Create products for every store; the same item keeps its SKU across stores."""
        catalog = [
            (category_name, name, f'SKU-{c:02d}{n:02d}')
            for c, (category_name, names) in enumerate(CATALOG.items())
            for n, name in enumerate(names)
        ]

        products = []
        links = []
        for store in stores:
            for category_name, name, sku in random.sample(catalog, k=min(per_store, len(catalog))):
                product = Product(
                    store=store,
                    name=name,
                    description=f'{name} from {store.name}.',
                    price=Decimal(str(round(random.uniform(0.5, 25), 2))),
                    discount_percentage=random.choice([0, 0, 0, 5, 10, 15]),
                    stock=random.randint(0, 200),
                    sku=sku,
                    weight=Decimal(str(round(random.uniform(0.1, 5), 3))),
                    is_featured=random.random() > 0.8,
                )
                products.append(product)
                links.append(categories[category_name])

        # Bulk create for efficiency; primary keys come back on PostgreSQL and SQLite
        Product.objects.bulk_create(products)

        Through = Product.categories.through
        Through.objects.bulk_create([
            Through(product_id=product.pk, category_id=category.pk)
            for product, category in zip(products, links)
        ])

        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
