"""
Django Admin configuration for catalog models.
"""
from django.contrib import admin
from .models import Category, Product, Store


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'is_featured', 'product_count', 'created_at']
    list_filter = ['is_featured']
    search_fields = ['name']
    ordering = ['name']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'store', 'price', 'stock', 'status', 'is_featured', 'created_at']
    list_filter = ['status', 'is_featured', 'store', 'created_at']
    search_fields = ['name', 'description', 'sku']
    ordering = ['name']
    raw_id_fields = ['store']
    filter_horizontal = ['categories']


@admin.register(Store)
class StoreModelAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'type', 'owner', 'store_code', 'is_active', 'product_count', 'created_at']
    list_filter = ['type', 'is_active', 'created_at']
    search_fields = ['name', 'location', 'store_code']
    ordering = ['name']
    raw_id_fields = ['owner']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'
