from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, PredefinedQuestion, SecurityQuestion


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'org_id', 'balance', 'free_minutes_remaining', 'is_active']
    list_filter = ['role', 'is_active', 'has_claimed_free_number']
    search_fields = ['email', 'name', 'username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Workspace', {'fields': ('org_id', 'role', 'name', 'phone')}),
        ('Wallet', {'fields': (
            'balance', 'free_minutes_remaining', 'free_minutes_last_reset', 'has_claimed_free_number',
        )}),
    )


@admin.register(PredefinedQuestion)
class PredefinedQuestionAdmin(admin.ModelAdmin):
    list_display = ['question', 'category', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['question']


@admin.register(SecurityQuestion)
class SecurityQuestionAdmin(admin.ModelAdmin):
    list_display = ['user', 'predefined_question', 'created_at']
    readonly_fields = ['answer_hash', 'created_at', 'updated_at']
