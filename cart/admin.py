"""
Django Admin configuration for cart models.
"""
from django.contrib import admin
from .models import CartItem


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'product', 'quantity', 'price', 'updated_at']
    search_fields = ['customer__email', 'product__name']
    ordering = ['-created_at']
    raw_id_fields = ['customer', 'product']
