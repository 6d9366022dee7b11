from django.contrib import admin
from .models import Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'user_id', 'box_size', 'fulfillment_type', 'payment_interval',
        'remaining_orders', 'total_orders', 'status', 'period_start',
    ]
    list_filter = ['status', 'box_size', 'fulfillment_type', 'payment_interval']
    search_fields = ['id', 'user_id']
    readonly_fields = ['remaining_orders', 'renewed_from_id', 'created_at', 'updated_at']
