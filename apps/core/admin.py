from django.contrib import admin
from .models import ScheduledAction


@admin.register(ScheduledAction)
class ScheduledActionAdmin(admin.ModelAdmin):
    list_display = ['key', 'kind', 'queue', 'run_at', 'status', 'attempts']
    list_filter = ['kind', 'queue', 'status']
    search_fields = ['key']
