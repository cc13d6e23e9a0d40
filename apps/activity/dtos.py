from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class ActivityDTO:
    id: int
    type: str
    title: str
    description: str
    website: Optional[str]
    performed_by_name: Optional[str]
    metadata: Any
    timestamp: datetime
    timeAgo: str


from ninja import Schema


class ActivityOut(Schema):
    id: int
    type: str
    title: str
    description: str
    website: Optional[str] = None
    performed_by_name: Optional[str] = None
    metadata: Any = None
    timestamp: datetime
    timeAgo: str
