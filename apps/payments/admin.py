from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'user_id', 'payment_type', 'amount', 'refunded_amount', 'status', 'created_at']
    list_filter = ['payment_type', 'status']
    search_fields = ['id', 'user_id', 'subscription_id', 'transaction_id']
    readonly_fields = ['transaction_id', 'refund_id', 'failure_reason', 'created_at', 'updated_at']
