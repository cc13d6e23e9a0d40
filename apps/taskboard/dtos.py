from datetime import date
from typing import List, Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import Task, TaskStatus, TaskPriority

TaskOut = create_schema(Task, exclude=['org_id', 'created_by'])


class TaskIn(Schema):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee: Optional[str] = Field(None, max_length=255)
    due_date: Optional[date] = None
    website_id: Optional[int] = None


class TaskUpdate(Schema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee: Optional[str] = Field(None, max_length=255)
    due_date: Optional[date] = None
    website_id: Optional[int] = None


class TaskListOut(Schema):
    data: List[TaskOut]
    pagination: Optional[dict] = None
