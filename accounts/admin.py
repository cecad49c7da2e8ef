"""
Django Admin configuration for account models.
"""
from django.contrib import admin
from .models import Customer, StoreAdmin, Courier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['id', 'email', 'full_name', 'phone', 'city', 'created_at']
    search_fields = ['email', 'full_name', 'phone']
    ordering = ['email']
    exclude = ['password']


@admin.register(StoreAdmin)
class StoreAdminAdmin(admin.ModelAdmin):
    list_display = ['id', 'email', 'full_name', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['email', 'full_name']
    ordering = ['email']
    exclude = ['password']


@admin.register(Courier)
class CourierAdmin(admin.ModelAdmin):
    list_display = ['id', 'email', 'full_name', 'phone', 'vehicle', 'created_at']
    search_fields = ['email', 'full_name', 'phone']
    ordering = ['email']
    exclude = ['password']
