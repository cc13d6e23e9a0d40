from django.contrib import admin
from .models import SerpApiKey, KeywordTracking, KeywordRankHistory, SavedKeyword, AnalyticsSnapshot


@admin.register(SerpApiKey)
class SerpApiKeyAdmin(admin.ModelAdmin):
    list_display = ['id', 'api_key', 'count', 'date_created', 'date_updated']
    readonly_fields = ['date_created', 'date_updated']


class KeywordRankHistoryInline(admin.TabularInline):
    model = KeywordRankHistory
    extra = 0
    readonly_fields = ['rank_position', 'check_date', 'notes']


@admin.register(KeywordTracking)
class KeywordTrackingAdmin(admin.ModelAdmin):
    list_display = ['keyword', 'target_url', 'client', 'current_rank', 'rank_change', 'check_frequency', 'last_checked', 'is_active']
    list_filter = ['is_active', 'check_frequency', 'search_engine', 'country']
    search_fields = ['keyword', 'target_url']
    inlines = [KeywordRankHistoryInline]


@admin.register(SavedKeyword)
class SavedKeywordAdmin(admin.ModelAdmin):
    list_display = ['keyword', 'user', 'category', 'volume', 'difficulty', 'created_at']
    list_filter = ['category']
    search_fields = ['keyword']


@admin.register(AnalyticsSnapshot)
class AnalyticsSnapshotAdmin(admin.ModelAdmin):
    list_display = ['url', 'mode', 'user', 'created_at']
    search_fields = ['url']
