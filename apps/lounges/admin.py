from django.contrib import admin
from .models import Lounge, Food, Contract


class FoodInline(admin.TabularInline):
    """Inline admin for catalog items within a lounge."""
    model = Food
    extra = 0
    fields = ['name', 'price', 'is_available', 'estimated_time']


@admin.register(Lounge)
class LoungeAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'is_approved', 'is_active', 'created_at']
    list_filter = ['is_approved', 'is_active']
    search_fields = ['name', 'owner__email']
    inlines = [FoodInline]


@admin.register(Food)
class FoodAdmin(admin.ModelAdmin):
    list_display = ['name', 'lounge', 'price', 'is_available', 'estimated_time']
    list_filter = ['is_available', 'lounge']
    search_fields = ['name', 'lounge__name']


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    """
    Admin interface for prepaid contracts.

    The remaining balance is read-only here: it is only ever debited by
    order settlement.
    """

    list_display = [
        'user',
        'lounge',
        'total_amount',
        'remaining_balance',
        'is_active',
        'is_expired',
        'end_date',
    ]
    list_filter = ['is_active', 'is_expired', 'lounge']
    search_fields = ['user__email', 'user__phone', 'lounge__name']

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ['remaining_balance', 'created_at', 'updated_at']
        return ['created_at', 'updated_at']
