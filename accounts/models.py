"""
Account Models - credential store for the three principal roles.

Models:
    - Customer: shoppers placing orders
    - StoreAdmin: principals owning and managing one store
    - Courier: delivery principals fulfilling orders

Passwords are stored with Django's configured password hashers.
"""
from django.contrib.auth.hashers import check_password, make_password
from django.db import models


class Account(models.Model):
    """Fields and password handling shared by every role."""
    email = models.EmailField(
        unique=True,
        db_index=True,
        help_text="Login email, stored lower-case"
    )
    password = models.CharField(max_length=128)
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['email']

    def __str__(self):
        return f"{self.full_name} <{self.email}>"

    def save(self, *args, **kwargs):
        self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def set_password(self, raw_password: str) -> None:
        self.password = make_password(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return check_password(raw_password, self.password)


class AddressFields(models.Model):
    address = models.CharField(max_length=300, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    state = models.CharField(max_length=100, blank=True, default='')
    pin = models.CharField(max_length=20, blank=True, default='')
    country = models.CharField(max_length=100, blank=True, default='')

    class Meta:
        abstract = True

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, self.state, self.pin, self.country]
        return ', '.join(part for part in parts if part)


class Customer(Account, AddressFields):
    class Meta(Account.Meta):
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'


class StoreAdmin(Account, AddressFields):
    """
    Store administrator. Becomes a STORE_OWNER once their store is created.
    """

    class Role(models.TextChoices):
        USER = 'user', 'User'
        STORE_OWNER = 'store-owner', 'Store owner'

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
        help_text="Becomes store-owner when a store is created"
    )

    class Meta(Account.Meta):
        verbose_name = 'Store Admin'
        verbose_name_plural = 'Store Admins'


class Courier(Account):
    vehicle = models.CharField(max_length=100, blank=True, default='')

    class Meta(Account.Meta):
        verbose_name = 'Courier'
        verbose_name_plural = 'Couriers'
