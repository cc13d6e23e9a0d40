from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import Client, ChecklistCompletion


@dataclass(frozen=True)
class ChecklistStats:
    total_items: int
    completed_items: int
    incomplete_items: int


ClientOut = create_schema(Client, exclude=['org_id', 'created_by'])
ChecklistCompletionOut = create_schema(ChecklistCompletion, exclude=['user'])


class ClientIn(Schema):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    website: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=255)
    reviews: Optional[int] = None
    contacted: bool = False
    follow_up_at: Optional[datetime] = None
    notes: Optional[str] = None


class ClientUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=255)
    reviews: Optional[int] = None
    contacted: Optional[bool] = None
    follow_up_at: Optional[datetime] = None
    notes: Optional[str] = None


class ClientListOut(Schema):
    data: List[ClientOut]
    pagination: Optional[dict] = None


class ToggleIn(Schema):
    isCompleted: Optional[bool] = None
