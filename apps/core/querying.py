"""
Shared list helpers: whitelisted sorting and page/per_page pagination.
"""
import math
from typing import Iterable, Optional, Tuple


def apply_sorting(
    queryset,
    sort_by: Optional[str],
    sort_dir: Optional[str],
    allowed: Iterable[str],
    default: str = 'created_at',
):
    """
    Order a queryset by a whitelisted field.

    Unknown fields fall back to `default`, unknown directions to desc.
    """
    field = sort_by if sort_by in allowed else default
    direction = (sort_dir or '').lower()
    if direction not in ('asc', 'desc'):
        direction = 'desc'
    prefix = '-' if direction == 'desc' else ''
    return queryset.order_by(f'{prefix}{field}', f'{prefix}id')


def paginate(queryset, page: Optional[int], per_page: Optional[int], default_per_page: int = 15) -> Tuple[list, dict]:
    """
    Slice a queryset for one page.

    Returns:
        (items, pagination) where pagination carries current_page, per_page,
        total, last_page, from and to.
    """
    per_page = per_page if per_page and per_page > 0 else default_per_page
    page = page if page and page > 0 else 1
    offset = (page - 1) * per_page

    total = queryset.count()
    items = list(queryset[offset:offset + per_page])

    return items, {
        'current_page': page,
        'per_page': per_page,
        'total': total,
        'last_page': max(1, math.ceil(total / per_page)),
        'from': offset + 1 if items else None,
        'to': offset + len(items) if items else None,
    }
