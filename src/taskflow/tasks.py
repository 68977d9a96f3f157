from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .models import Priority, Task, utcnow


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = value.strip()
    return s or None


# PUBLIC_INTERFACE
def new_task(
    existing: Sequence[Task],
    title: str,
    description: Optional[str] = None,
    due_date: Optional[datetime] = None,
    priority: Priority = "medium",
    category_id: Optional[str] = None,
    tags: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> Task:
    """
    Build a task ready to be appended to the collection.

    It gets a fresh id, identical created/updated timestamps and a manual rank
    one past the highest rank currently in use.
    """
    now = now or utcnow()
    next_order = max((t.order or 0 for t in existing), default=-1) + 1
    return Task(
        id=uuid.uuid4().hex,
        title=title,
        description=_clean_description(description),
        completed=False,
        created_at=now,
        updated_at=now,
        due_date=due_date,
        priority=priority,
        category_id=category_id,
        tags=tuple(tags),
        order=next_order,
    )


# PUBLIC_INTERFACE
def edit_task(
    task: Task,
    title: str,
    description: Optional[str],
    due_date: Optional[datetime],
    priority: Priority,
    category_id: Optional[str],
    tags: Iterable[str],
    now: Optional[datetime] = None,
) -> Task:
    """
    Full replacement of a task's editable fields. Identity, completion flag,
    creation time and manual rank are carried forward from the original.
    """
    return Task(
        id=task.id,
        title=title,
        description=_clean_description(description),
        completed=task.completed,
        created_at=task.created_at,
        updated_at=now or utcnow(),
        due_date=due_date,
        priority=priority,
        category_id=category_id,
        tags=tuple(tags),
        order=task.order,
    )


# PUBLIC_INTERFACE
def toggle_tag(tags: Sequence[str], tag_id: str) -> List[str]:
    """Add the tag when absent, remove it when present."""
    if tag_id in tags:
        return [t for t in tags if t != tag_id]
    return [*tags, tag_id]


# PUBLIC_INTERFACE
def apply_manual_order(tasks: Sequence[Task], ordered_ids: Sequence[str]) -> List[Task]:
    """
    Return the tasks in the given id order with manual ranks reassigned to
    their positions. Tasks whose ids are not listed follow in their current
    order; unknown ids are ignored.
    """
    by_id = {t.id: t for t in tasks}
    seen = set()
    ordered: List[Task] = []
    for tid in ordered_ids:
        if tid in by_id and tid not in seen:
            seen.add(tid)
            ordered.append(by_id[tid])
    ordered.extend(t for t in tasks if t.id not in seen)
    return [t if t.order == i else t.model_copy(update={"order": i}) for i, t in enumerate(ordered)]
