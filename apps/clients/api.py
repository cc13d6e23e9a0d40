"""
Client endpoints and the per-client onboarding checklist.
"""
from dataclasses import asdict
from typing import List, Optional
from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_permission, get_org_id
from apps.identity.permissions import Permissions
from .dtos import ClientOut, ClientIn, ClientUpdate, ClientListOut, ChecklistCompletionOut, ToggleIn
from . import services

router = Router(tags=["Clients"])


def _completion(c) -> dict:
    return ChecklistCompletionOut.from_orm(c).dict()


# =============================================================================
# Clients
# =============================================================================

@router.get("", response=ClientListOut, auth=None)
def list_clients(
    request: HttpRequest,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
):
    require_permission(request, Permissions.CLIENTS_VIEW)
    clients = services.list_clients(get_org_id(request), search, sort_by, sort_dir)
    return {"data": clients, "pagination": None}


@router.get("/{client_id}", response=ClientOut, auth=None)
def get_client(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_VIEW)
    client = services.get_client(get_org_id(request), client_id)
    if not client:
        raise HttpError(404, "Client not found")
    return client


@router.post("", response={201: ClientOut}, auth=None)
def create_client(request: HttpRequest, payload: ClientIn):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    return 201, services.create_client(get_org_id(request), payload, user=user)


@router.put("/{client_id}", response=ClientOut, auth=None)
def update_client(request: HttpRequest, client_id: int, payload: ClientUpdate):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    client = services.update_client(
        get_org_id(request), client_id, payload.dict(exclude_unset=True), user=user
    )
    if not client:
        raise HttpError(404, "Client not found")
    return client


@router.delete("/{client_id}", auth=None)
def delete_client(request: HttpRequest, client_id: int):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    if not services.delete_client(get_org_id(request), client_id, user=user):
        raise HttpError(404, "Client not found")
    return {"message": "Client deleted successfully"}


# =============================================================================
# Checklist
# =============================================================================

@router.get("/{client_id}/checklist", auth=None)
def get_checklist(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_VIEW)
    try:
        items = services.get_checklist(get_org_id(request), client_id)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": {item_id: _completion(c) for item_id, c in items.items()}}


@router.get("/{client_id}/checklist/stats", auth=None)
def checklist_stats(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_VIEW)
    try:
        stats = services.checklist_stats(get_org_id(request), client_id)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": asdict(stats)}


@router.get("/{client_id}/checklist/completed", auth=None)
def completed_items(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_VIEW)
    try:
        items = services.list_items(get_org_id(request), client_id, completed=True)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": [_completion(c) for c in items]}


@router.get("/{client_id}/checklist/incomplete", auth=None)
def incomplete_items(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_VIEW)
    try:
        items = services.list_items(get_org_id(request), client_id, completed=False)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": [_completion(c) for c in items]}


@router.put("/{client_id}/checklist/{item_id}/toggle", auth=None)
def toggle_item(request: HttpRequest, client_id: int, item_id: str, payload: ToggleIn):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    try:
        completion = services.toggle_item(
            get_org_id(request), client_id, item_id, user=user, is_completed=payload.isCompleted
        )
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": _completion(completion)}


@router.put("/{client_id}/checklist/{item_id}/complete", auth=None)
def complete_item(request: HttpRequest, client_id: int, item_id: str):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    try:
        completion = services.mark_completed(get_org_id(request), client_id, item_id, user=user)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": _completion(completion)}


@router.put("/{client_id}/checklist/{item_id}/incomplete", auth=None)
def incomplete_item(request: HttpRequest, client_id: int, item_id: str):
    user = require_permission(request, Permissions.CLIENTS_MANAGE)
    try:
        completion = services.mark_incomplete(get_org_id(request), client_id, item_id, user=user)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "data": _completion(completion)}


@router.delete("/{client_id}/checklist/reset", auth=None)
def reset_checklist(request: HttpRequest, client_id: int):
    require_permission(request, Permissions.CLIENTS_MANAGE)
    try:
        services.reset_checklist(get_org_id(request), client_id)
    except services.ClientNotFoundError as e:
        raise HttpError(404, str(e))
    return {"success": True, "message": "Checklist reset successfully"}
