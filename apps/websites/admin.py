from django.contrib import admin
from .models import Website


@admin.register(Website)
class WebsiteAdmin(admin.ModelAdmin):
    list_display = ['domain', 'niche', 'status', 'monthly_revenue', 'domain_authority', 'created_at']
    list_filter = ['status']
    search_fields = ['domain', 'niche']
