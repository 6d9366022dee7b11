from django.contrib import admin
from .models import Order, OrderAddon


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'fulfillment_date', 'fulfillment_time', 'status', 'user_id',
        'subscription_id', 'sequence', 'cutoff_datetime', 'total_amount',
    ]
    list_filter = ['status', 'fulfillment_date']
    search_fields = ['id', 'user_id', 'subscription_id']
    date_hierarchy = 'fulfillment_date'
    readonly_fields = ['locked_at', 'fulfilled_at', 'cancelled_at', 'created_at', 'updated_at']


@admin.register(OrderAddon)
class OrderAddonAdmin(admin.ModelAdmin):
    list_display = ['name', 'quantity', 'total_price', 'order', 'created_at']
    search_fields = ['order__id', 'addon_id']
    raw_id_fields = ['order']
