from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class FollowUpDTO:
    id: int
    lead_id: UUID
    lead_name: Optional[str]
    lead_email: Optional[str]
    outcome: str
    notes: str
    next_follow_up: datetime


from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field
from .models import Lead, CallLog, LeadStatus, CallOutcome

LeadOut = create_schema(Lead, exclude=['org_id', 'created_by'])
CallLogOut = create_schema(CallLog, exclude=['user'])


class LeadIn(Schema):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=255)
    status: LeadStatus = LeadStatus.NEW
    notes: Optional[str] = None
    reviews: Optional[int] = None
    website: Optional[str] = Field(None, max_length=255)
    contacted: bool = False
    city: Optional[str] = Field(None, max_length=255)


class LeadUpdate(Schema):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=255)
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None
    reviews: Optional[int] = None
    website: Optional[str] = Field(None, max_length=255)
    contacted: Optional[bool] = None
    city: Optional[str] = Field(None, max_length=255)


class LeadListOut(Schema):
    data: List[LeadOut]
    pagination: dict


class CallLogIn(Schema):
    lead_id: Optional[UUID] = None
    outcome: Optional[CallOutcome] = None
    notes: Optional[str] = None
    duration: int = 0
    next_follow_up: Optional[datetime] = None


class CallLogUpdate(Schema):
    outcome: Optional[CallOutcome] = None
    notes: Optional[str] = None
    duration: Optional[int] = None
    next_follow_up: Optional[datetime] = None


class FollowUpOut(Schema):
    id: int
    lead_id: UUID
    lead_name: Optional[str] = None
    lead_email: Optional[str] = None
    outcome: str
    notes: str
    next_follow_up: datetime
