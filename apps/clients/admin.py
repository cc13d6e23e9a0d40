from django.contrib import admin
from .models import Client, ChecklistCompletion


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'city', 'contacted', 'follow_up_at']
    list_filter = ['contacted', 'city']
    search_fields = ['name', 'email', 'phone']


@admin.register(ChecklistCompletion)
class ChecklistCompletionAdmin(admin.ModelAdmin):
    list_display = ['client', 'checklist_item_id', 'is_completed', 'completed_at']
    list_filter = ['is_completed']
