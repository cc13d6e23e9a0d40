"""
Services for Clients app: client CRUD and the per-client onboarding checklist.
"""
from typing import Dict, List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.activity.services import log_activity, ActivityType
from apps.core.querying import apply_sorting
from .models import Client, ChecklistCompletion
from .dtos import ClientIn, ChecklistStats

SORTABLE_FIELDS = ('created_at', 'name', 'email', 'city')


class ClientNotFoundError(ValueError):
    """Client does not exist in this workspace."""


# =============================================================================
# Clients
# =============================================================================

def list_clients(
    org_id: UUID,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> List[Client]:
    queryset = Client.objects.filter(org_id=org_id)
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) |
            Q(email__icontains=search) |
            Q(phone__icontains=search)
        )
    return list(apply_sorting(queryset, sort_by, sort_dir, SORTABLE_FIELDS))


def get_client(org_id: UUID, client_id: int) -> Optional[Client]:
    try:
        return Client.objects.get(org_id=org_id, id=client_id)
    except Client.DoesNotExist:
        return None


def create_client(org_id: UUID, payload: ClientIn, user=None) -> Client:
    client = Client.objects.create(org_id=org_id, created_by=user, **payload.dict())

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CLIENT_CREATED,
        title="New client added",
        description=f'Client "{client.name}" was added to the system',
        performed_by=user,
        metadata={"client_id": client.id},
    )
    return client


def update_client(org_id: UUID, client_id: int, data: dict, user=None) -> Optional[Client]:
    client = get_client(org_id, client_id)
    if client is None:
        return None

    for attr, value in data.items():
        setattr(client, attr, value)
    client.save()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CLIENT_UPDATED,
        title="Client updated",
        description=f'Client "{client.name}" was updated',
        performed_by=user,
        metadata={"client_id": client.id},
    )
    return client


def delete_client(org_id: UUID, client_id: int, user=None) -> bool:
    client = get_client(org_id, client_id)
    if client is None:
        return False

    name = client.name
    client.delete()

    log_activity(
        org_id=org_id,
        activity_type=ActivityType.CLIENT_DELETED,
        title="Client deleted",
        description=f'Client "{name}" was deleted from the system',
        performed_by=user,
    )
    return True


# =============================================================================
# Checklist
# =============================================================================

def _require_client(org_id: UUID, client_id: int) -> Client:
    client = get_client(org_id, client_id)
    if client is None:
        raise ClientNotFoundError("Client not found")
    return client


def toggle_item(
    org_id: UUID,
    client_id: int,
    item_id: str,
    user=None,
    is_completed: Optional[bool] = None,
) -> ChecklistCompletion:
    """
    Flip an item, or force it to `is_completed` when given.

    A first toggle of an unseen item marks it completed.
    """
    client = _require_client(org_id, client_id)

    with transaction.atomic():
        completion = (
            ChecklistCompletion.objects
            .select_for_update()
            .filter(client=client, checklist_item_id=item_id)
            .first()
        )
        if completion is None:
            completion = ChecklistCompletion(client=client, checklist_item_id=item_id)
            new_state = True if is_completed is None else is_completed
        else:
            new_state = (not completion.is_completed) if is_completed is None else is_completed

        completion.is_completed = new_state
        completion.completed_at = timezone.now() if new_state else None
        completion.user = user
        completion.save()

    return completion


def mark_completed(org_id: UUID, client_id: int, item_id: str, user=None) -> ChecklistCompletion:
    return toggle_item(org_id, client_id, item_id, user=user, is_completed=True)


def mark_incomplete(org_id: UUID, client_id: int, item_id: str, user=None) -> ChecklistCompletion:
    return toggle_item(org_id, client_id, item_id, user=user, is_completed=False)


def get_checklist(org_id: UUID, client_id: int) -> Dict[str, ChecklistCompletion]:
    """Completion rows keyed by checklist item id."""
    client = _require_client(org_id, client_id)
    return {c.checklist_item_id: c for c in client.checklist.all()}


def list_items(org_id: UUID, client_id: int, completed: bool) -> List[ChecklistCompletion]:
    client = _require_client(org_id, client_id)
    return list(client.checklist.filter(is_completed=completed))


def checklist_stats(org_id: UUID, client_id: int) -> ChecklistStats:
    client = _require_client(org_id, client_id)
    counts = client.checklist.aggregate(
        total=Count('id'),
        completed=Count('id', filter=Q(is_completed=True)),
    )
    return ChecklistStats(
        total_items=counts['total'],
        completed_items=counts['completed'],
        incomplete_items=counts['total'] - counts['completed'],
    )


def reset_checklist(org_id: UUID, client_id: int) -> int:
    client = _require_client(org_id, client_id)
    deleted, _ = client.checklist.all().delete()
    return deleted
