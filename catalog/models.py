"""
Catalog Models - Core data entities for browsing the marketplace.

Models:
    - Category: Product categorization
    - Store: A tenant's shop, owned by exactly one store admin
    - Product: Items a store sells, with their own stock count
"""
import secrets
from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from accounts.models import StoreAdmin


def generate_store_code() -> str:
    """Random 6-character uppercase hex code used to join a store."""
    return secrets.token_hex(3).upper()


class Category(models.Model):
    """
    Product category for organizing products.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        db_index=True,
        help_text="Unique category name"
    )
    description = models.TextField(blank=True, default='')
    image = models.URLField(blank=True, default='')
    is_featured = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['name']

    def __str__(self):
        return self.name


class Store(models.Model):
    """
    Store entity. Each store admin owns at most one store.
    """

    class Type(models.TextChoices):
        GROCERY = 'grocery', 'Grocery'
        CONVENIENCE = 'convenience', 'Convenience'
        SUPERMART = 'supermart', 'Supermart'

    name = models.CharField(
        max_length=200,
        unique=True,
        db_index=True,
        help_text="Store name"
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    location = models.CharField(
        max_length=300,
        blank=True,
        default='',
        help_text="Store address or location description"
    )
    opening_time = models.TimeField()
    closing_time = models.TimeField()
    contact_number = models.CharField(max_length=20)
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('5'))]
    )
    description = models.TextField()
    image = models.URLField(blank=True, default='')
    banner = models.URLField(blank=True, default='')
    owner = models.OneToOneField(
        StoreAdmin,
        on_delete=models.CASCADE,
        related_name='store',
        help_text="Store admin owning this store"
    )
    store_code = models.CharField(
        max_length=6,
        unique=True,
        default=generate_store_code,
        help_text="Code used to join the store"
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether store is operational"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Store'
        verbose_name_plural = 'Stores'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.store_code})"


class Product(models.Model):
    """
    Product sold by one store.

    Stock only ever goes down, through order placement.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'
        OUT_OF_STOCK = 'out_of_stock', 'Out of stock'

    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    description = models.TextField(blank=True, default='')
    store = models.ForeignKey(
        Store,
        on_delete=models.CASCADE,
        related_name='products',
        help_text="Store selling this product"
    )
    categories = models.ManyToManyField(
        Category,
        related_name='products',
        blank=True
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Unit price"
    )
    discount_percentage = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)]
    )
    stock = models.PositiveIntegerField(
        default=0,
        help_text="Units available for ordering"
    )
    sku = models.CharField(max_length=64, db_index=True)
    weight = models.DecimalField(
        max_digits=8,
        decimal_places=3,
        help_text="Weight in kilograms"
    )
    is_featured = models.BooleanField(default=False, db_index=True)
    image = models.URLField(blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['store', 'status']),
            models.Index(fields=['status', 'is_featured']),
            models.Index(fields=['price']),
        ]

    def __str__(self):
        return f"{self.name} (${self.price})"

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock == 0
