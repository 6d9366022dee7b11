from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['notification_type', 'user_id', 'method', 'status', 'sent_at', 'created_at']
    list_filter = ['notification_type', 'status', 'method']
    search_fields = ['user_id', 'order_id', 'subject']
    readonly_fields = ['sent_at', 'read_at', 'error', 'created_at', 'updated_at']
