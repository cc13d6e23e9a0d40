from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import KeywordTracking, KeywordRankHistory, SavedKeyword, AnalyticsSnapshot


@dataclass(frozen=True)
class ApiKeyUsageDTO:
    api_key: str
    count: int
    date_created: datetime
    date_updated: datetime
    status: str


@dataclass(frozen=True)
class RankingResult:
    """Where a target URL sits in one Google result page."""
    rank: Optional[int]
    title: Optional[str] = None
    snippet: Optional[str] = None
    url: Optional[str] = None
    search_volume: Optional[int] = None
    competition_level: Optional[str] = None
    cpc: Optional[Decimal] = None
    raw_data: dict = field(default_factory=dict)


# =============================================================================
# Keyword tracking
# =============================================================================

KeywordTrackingOut = create_schema(KeywordTracking, exclude=['org_id', 'user'])
KeywordRankHistoryOut = create_schema(KeywordRankHistory, exclude=['keyword_tracking'])


class KeywordTrackingIn(Schema):
    client_id: Optional[int] = None
    keyword: Optional[str] = Field(None, max_length=255)
    target_url: Optional[str] = Field(None, max_length=500)
    search_engine: str = 'google'
    country: str = 'us'
    location: Optional[str] = None
    check_frequency: str = 'weekly'
    notes: Optional[str] = None


class KeywordTrackingUpdate(Schema):
    keyword: Optional[str] = Field(None, min_length=1, max_length=255)
    target_url: Optional[str] = Field(None, min_length=1, max_length=500)
    search_engine: Optional[str] = None
    country: Optional[str] = None
    location: Optional[str] = None
    check_frequency: Optional[str] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class BulkCheckIn(Schema):
    ids: List[int] = []


# =============================================================================
# Heatmap
# =============================================================================

class AnalysisIn(Schema):
    business_address: str = Field(..., min_length=5, max_length=500)
    keyword: str = Field(..., min_length=2, max_length=100)
    target_business_name: str = Field(..., min_length=2, max_length=200)
    grid_size: str


class AddKeyIn(Schema):
    api_key: Optional[str] = None


# =============================================================================
# RapidAPI proxy
# =============================================================================

class DomainIn(Schema):
    domain: str = Field(..., min_length=3, max_length=255)


class RankCheckIn(Schema):
    keyword: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)
    country: str = Field('us', min_length=2, max_length=2)
    id: str = 'google-serp'


# =============================================================================
# Saved keywords
# =============================================================================

SavedKeywordOut = create_schema(SavedKeyword, exclude=['user'])


class SavedKeywordIn(Schema):
    keyword: Optional[str] = Field(None, max_length=255)
    difficulty: Optional[int] = None
    volume: Optional[int] = None
    last_updated: Optional[datetime] = None
    search_engine: str = 'google'
    country: str = 'us'
    category: str = 'idea'
    notes: Optional[str] = None


class SavedKeywordUpdate(Schema):
    difficulty: Optional[int] = None
    volume: Optional[int] = None
    last_updated: Optional[datetime] = None
    search_engine: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None


class BulkSaveIn(Schema):
    keywords: List[SavedKeywordIn] = []


# =============================================================================
# Analytics snapshots
# =============================================================================

AnalyticsSnapshotOut = create_schema(AnalyticsSnapshot, exclude=['user'])


class AnalyticsSnapshotIn(Schema):
    url: str = Field(..., min_length=1, max_length=500)
    mode: str = Field(..., min_length=1, max_length=50)
    snapshot: dict
