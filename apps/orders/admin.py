from django.contrib import admin
from .models import Order, OrderItem, Payment, Commission


class ReadOnlyAdminMixin:
    """Orders, payments and ledger rows are written by the services only."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class OrderItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    """Inline admin for order lines within an order."""
    model = OrderItem
    extra = 0
    fields = ['position', 'name', 'price', 'quantity', 'subtotal', 'estimated_time']
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        'short_id',
        'user',
        'lounge',
        'total_price',
        'commission',
        'payment_method',
        'status',
        'created_at',
        'delivered_at',
    ]
    list_filter = ['status', 'payment_method', 'lounge', 'created_at']
    search_fields = ['id', 'user__email', 'user__phone', 'lounge__name']
    date_hierarchy = 'created_at'
    inlines = [OrderItemInline]
    exclude = ['qr_code_image']


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['id', 'user', 'amount', 'method', 'status', 'contract', 'order', 'created_at']
    list_filter = ['method', 'status', 'created_at']
    search_fields = ['id', 'user__email', 'order__id']


@admin.register(Commission)
class CommissionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['order', 'lounge', 'order_amount', 'rate', 'amount', 'created_at']
    list_filter = ['lounge', 'created_at']
    date_hierarchy = 'created_at'
