from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'phone', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'name', 'phone']
    ordering = ['email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('CSA', {'fields': ('name', 'role', 'phone', 'address', 'stripe_customer_id')}),
    )
