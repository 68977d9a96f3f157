"""
View projection: the filtered, sorted list of tasks derived from a snapshot.

Everything here is a pure function of its arguments. Nothing is cached; callers
re-derive the projection from the current snapshot whenever they need it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .models import PRIORITY_RANK, SortOption, Task, TodoFilters, TodoSort, utcnow
from .store import TodoState


# PUBLIC_INTERFACE
def matches_filters(task: Task, filters: TodoFilters) -> bool:
    """Return True when the task passes every filter criterion."""
    if filters.search_term and filters.search_term.lower() not in task.title.lower():
        return False
    if filters.priority != "all" and task.priority != filters.priority:
        return False
    if filters.category_id != "all" and task.category_id != filters.category_id:
        return False
    if filters.tags and not any(tag_id in task.tags for tag_id in filters.tags):
        return False
    if task.completed and not filters.show_completed:
        return False
    return True


# PUBLIC_INTERFACE
def filter_tasks(tasks: Iterable[Task], filters: TodoFilters) -> List[Task]:
    """Keep the tasks matching the filters, preserving their order."""
    return [t for t in tasks if matches_filters(t, filters)]


# PUBLIC_INTERFACE
def sort_tasks(tasks: Sequence[Task], sort: TodoSort) -> List[Task]:
    """
    Return a new list ordered by the sort preference.

    The sort is stable, so tasks with equal keys keep their collection order.
    For due_date, tasks without a due date always come last whatever the
    direction.
    """
    reverse = sort.direction == "desc"

    if sort.option == "due_date":
        dated = [t for t in tasks if t.due_date is not None]
        undated = [t for t in tasks if t.due_date is None]
        return sorted(dated, key=lambda t: t.due_date, reverse=reverse) + undated

    if sort.option == "priority":
        return sorted(tasks, key=lambda t: PRIORITY_RANK[t.priority], reverse=reverse)

    if sort.option == "created_at":
        return sorted(tasks, key=lambda t: t.created_at, reverse=reverse)

    if sort.option == "manual":
        return sorted(tasks, key=lambda t: t.order or 0, reverse=reverse)

    return list(tasks)


# PUBLIC_INTERFACE
def project(state: TodoState) -> List[Task]:
    """Filter then sort the snapshot's tasks using its own preferences."""
    return sort_tasks(filter_tasks(state.todos, state.filters), state.sort)


# PUBLIC_INTERFACE
def next_sort(current: TodoSort, option: SortOption) -> TodoSort:
    """
    Sort preference after the user picks an option: picking the active option
    flips the direction, picking another one selects it ascending.
    """
    if option == current.option:
        return TodoSort(option=option, direction="asc" if current.direction == "desc" else "desc")
    return TodoSort(option=option, direction="asc")


# PUBLIC_INTERFACE
def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """An open task whose due date has passed."""
    if task.completed or task.due_date is None:
        return False
    return task.due_date < (now or utcnow())


@dataclass(frozen=True)
class CompletionStats:
    """
    Header/statistics figures.

    - total / completed: over the whole collection
    - completion_rate: rounded percentage, 0 for an empty collection
    - pending: open tasks in the current projection
    - by_priority: open tasks per priority over the whole collection
    - overdue: open tasks past their due date
    """
    total: int
    completed: int
    completion_rate: int
    pending: int
    by_priority: Dict[str, int]
    overdue: int


# PUBLIC_INTERFACE
def completion_stats(state: TodoState, now: Optional[datetime] = None) -> CompletionStats:
    """Compute completion statistics for a snapshot."""
    now = now or utcnow()
    total = len(state.todos)
    completed = sum(1 for t in state.todos if t.completed)
    # round half up
    rate = int(completed * 100 / total + 0.5) if total else 0
    by_priority = {p: 0 for p in PRIORITY_RANK}
    for t in state.todos:
        if not t.completed:
            by_priority[t.priority] += 1
    return CompletionStats(
        total=total,
        completed=completed,
        completion_rate=rate,
        pending=sum(1 for t in project(state) if not t.completed),
        by_priority=by_priority,
        overdue=sum(1 for t in state.todos if is_overdue(t, now)),
    )
