"""
Services for the task board.
"""
from typing import List, Optional
from uuid import UUID

from django.db.models import Q

from apps.activity.services import log_activity, ActivityType
from apps.core.querying import apply_sorting
from apps.websites.services import get_website
from .models import Task
from .dtos import TaskIn

SORTABLE_FIELDS = ('created_at', 'due_date', 'title', 'priority', 'status')


def list_tasks(
    org_id: UUID,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
    website_id: Optional[int] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> List[Task]:
    queryset = Task.objects.filter(org_id=org_id)

    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    if assignee:
        queryset = queryset.filter(assignee__icontains=assignee)
    if website_id:
        queryset = queryset.filter(website_id=website_id)
    if search:
        queryset = queryset.filter(Q(title__icontains=search) | Q(description__icontains=search))

    return list(apply_sorting(queryset, sort_by, sort_dir, SORTABLE_FIELDS))


def get_task(org_id: UUID, task_id: int) -> Optional[Task]:
    try:
        return Task.objects.get(org_id=org_id, id=task_id)
    except Task.DoesNotExist:
        return None


def _resolve_website(org_id: UUID, website_id: Optional[int]):
    if website_id is None:
        return None
    website = get_website(org_id, website_id)
    if website is None:
        raise ValueError("Website not found")
    return website


def create_task(org_id: UUID, payload: TaskIn, user=None) -> Task:
    data = payload.dict()
    website = _resolve_website(org_id, data.pop('website_id'))
    task = Task.objects.create(org_id=org_id, created_by=user, website=website, **data)

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.TASK_CREATED,
        title="New task created",
        description=f'Task "{task.title}" was created',
        website=website,
        performed_by=user,
    )
    return task


def update_task(org_id: UUID, task_id: int, data: dict, user=None) -> Optional[Task]:
    task = get_task(org_id, task_id)
    if task is None:
        return None

    if 'website_id' in data:
        task.website = _resolve_website(org_id, data.pop('website_id'))

    old_status = task.status
    for attr, value in data.items():
        setattr(task, attr, value)
    task.save()

    if old_status != task.status:
        log_activity(
            org_id=org_id,
            activity_type=ActivityType.TASK_STATUS_CHANGED,
            title="Task status updated",
            description=f'Task "{task.title}" status changed from {old_status} to {task.status}',
            website=task.website,
            performed_by=user,
        )
    return task


def delete_task(org_id: UUID, task_id: int, user=None) -> bool:
    task = get_task(org_id, task_id)
    if task is None:
        return False

    title, website = task.title, task.website
    task.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.TASK_DELETED,
        title="Task deleted",
        description=f'Task "{title}" was deleted',
        website=website,
        performed_by=user,
    )
    return True
