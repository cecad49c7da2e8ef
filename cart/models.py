"""
Cart Models - per-customer line items.
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from accounts.models import Customer
from catalog.models import Product


class CartItem(models.Model):
    """
    One product in a customer's cart.

    ``price`` is the line total (product price x quantity) captured when the
    item was added or last updated; it does not follow later price changes.
    """
    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='cart_items'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='cart_items'
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Line price snapshot"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Cart Item'
        verbose_name_plural = 'Cart Items'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.quantity}x {self.product.name} for {self.customer.email}"

    def reprice(self) -> None:
        self.price = self.product.price * self.quantity
