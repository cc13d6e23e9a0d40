from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import Website, WebsiteStatus

WebsiteOut = create_schema(Website, exclude=['org_id', 'created_by'])


class WebsiteIn(Schema):
    domain: str = Field(..., min_length=1, max_length=255)
    niche: Optional[str] = Field(None, max_length=100)
    status: WebsiteStatus = WebsiteStatus.ACTIVE
    monthly_revenue: Decimal = Field(Decimal('0'), ge=0)
    domain_authority: int = Field(0, ge=0, le=100)
    backlinks: int = Field(0, ge=0)
    organic_keywords: int = Field(0, ge=0)
    organic_traffic: int = Field(0, ge=0)
    top_keywords: Optional[List[str]] = None
    competitors: Optional[List[str]] = None
    seo_last_updated: Optional[datetime] = None


class WebsiteUpdate(Schema):
    domain: Optional[str] = Field(None, min_length=1, max_length=255)
    niche: Optional[str] = Field(None, max_length=100)
    status: Optional[WebsiteStatus] = None
    monthly_revenue: Optional[Decimal] = Field(None, ge=0)
    domain_authority: Optional[int] = Field(None, ge=0, le=100)
    backlinks: Optional[int] = Field(None, ge=0)
    organic_keywords: Optional[int] = Field(None, ge=0)
    organic_traffic: Optional[int] = Field(None, ge=0)
    top_keywords: Optional[List[str]] = None
    competitors: Optional[List[str]] = None
    seo_last_updated: Optional[datetime] = None


class WebsiteListOut(Schema):
    data: List[WebsiteOut]
    pagination: Optional[dict] = None
