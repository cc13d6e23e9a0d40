"""
Task board endpoints.
"""
from typing import Optional
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import TaskOut, TaskIn, TaskUpdate, TaskListOut
from . import services

router = Router(tags=["Tasks"])


@router.get("", response=TaskListOut, auth=None)
def list_tasks(
    request: HttpRequest,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
    website_id: Optional[int] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
):
    """
    List tasks in the workspace.

    Query Parameters:
    - status / priority: exact match
    - assignee: partial match
    - search: matches title or description
    - sort_by: created_at, due_date, title, priority, status
    """
    require_permission(request, Permissions.TASKS_VIEW)
    tasks = services.list_tasks(
        get_org_id(request), status, priority, assignee, website_id, search, sort_by, sort_dir
    )
    return {"data": tasks, "pagination": None}


@router.get("/{task_id}", response=TaskOut, auth=None)
def get_task(request: HttpRequest, task_id: int):
    require_permission(request, Permissions.TASKS_VIEW)
    task = services.get_task(get_org_id(request), task_id)
    if not task:
        raise HttpError(404, "Task not found")
    return task


@router.post("", response={201: TaskOut}, auth=None)
def create_task(request: HttpRequest, payload: TaskIn):
    user = require_permission(request, Permissions.TASKS_MANAGE)
    try:
        task = services.create_task(get_org_id(request), payload, user=user)
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, task


@router.put("/{task_id}", response=TaskOut, auth=None)
def update_task(request: HttpRequest, task_id: int, payload: TaskUpdate):
    user = require_permission(request, Permissions.TASKS_MANAGE)
    try:
        task = services.update_task(
            get_org_id(request), task_id, payload.dict(exclude_unset=True), user=user
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    if not task:
        raise HttpError(404, "Task not found")
    return task


@router.delete("/{task_id}", auth=None)
def delete_task(request: HttpRequest, task_id: int):
    user = require_permission(request, Permissions.TASKS_MANAGE)
    if not services.delete_task(get_org_id(request), task_id, user=user):
        raise HttpError(404, "Task not found")
    return {"message": "Task deleted successfully"}
