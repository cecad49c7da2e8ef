"""
Django Admin configuration for order models.
"""
from django.contrib import admin
from .models import Order, OrderItem, Payment


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'quantity', 'unit_price', 'subtotal']
    can_delete = False

    def subtotal(self, obj):
        return f"${obj.subtotal}"
    subtotal.short_description = 'Subtotal'


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ['gateway_order_id', 'gateway_payment_id', 'amount', 'status', 'created_at']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'order_number', 'store', 'customer_name', 'status',
        'payment_status', 'total_amount', 'courier', 'created_at'
    ]
    list_filter = ['status', 'payment_status', 'store', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email', 'store__name']
    ordering = ['-created_at']
    readonly_fields = ['order_number', 'total_amount', 'created_at', 'updated_at']
    raw_id_fields = ['customer', 'courier']
    inlines = [OrderItemInline, PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['gateway_order_id', 'order', 'amount', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['gateway_order_id', 'gateway_payment_id', 'order__order_number']
    ordering = ['-created_at']
    raw_id_fields = ['order']
