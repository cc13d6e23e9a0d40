from django.contrib import admin
from .models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['type', 'title', 'org_id', 'performed_by', 'created_at']
    list_filter = ['type']
    search_fields = ['title', 'description']
    readonly_fields = ['created_at']
