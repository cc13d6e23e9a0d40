from django.contrib import admin
from .models import Lead, CallLog


class CallLogInline(admin.TabularInline):
    model = CallLog
    extra = 0
    fields = ['outcome', 'notes', 'next_follow_up', 'user']


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'company', 'status', 'contacted', 'created_at']
    list_filter = ['status', 'contacted']
    search_fields = ['name', 'email', 'company']
    inlines = [CallLogInline]
