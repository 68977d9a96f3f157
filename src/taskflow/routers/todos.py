from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..models import Category, SortOption, Tag, Task
from ..projection import completion_stats, next_sort, project
from ..schemas import ReorderRequest, StatsOut, TaskCreate, TaskEdit, TodoListOut
from ..store import (
    AddTodo,
    FilterPatch,
    RemoveTodo,
    ReorderTodos,
    SetCategories,
    SetFilter,
    SetSort,
    SetTags,
    SetTheme,
    SortPatch,
    ThemePatch,
    TodoState,
    TodoStore,
    ToggleTodo,
    UpdateTodo,
)
from ..tasks import apply_manual_order, edit_task, new_task

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


def get_store(request: Request) -> TodoStore:
    """
    Dependency returning the app's store.
    """
    return request.app.state.store


def _find(state: TodoState, todo_id: str) -> Optional[Task]:
    return next((t for t in state.todos if t.id == todo_id), None)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TodoListOut,
    summary="List Todos",
    description=(
        "Return the tasks to display: the collection filtered and sorted with the "
        "current preferences. `total` counts the whole collection, `pending` the open "
        "tasks among the returned items."
    ),
)
def list_todos(store: TodoStore = Depends(get_store)) -> TodoListOut:
    state = store.state
    items = project(state)
    return TodoListOut(
        items=items,
        total=len(state.todos),
        pending=sum(1 for t in items if not t.completed),
    )


# PUBLIC_INTERFACE
@router.get("/state", response_model=TodoState, summary="Get Snapshot")
def get_state(store: TodoStore = Depends(get_store)) -> TodoState:
    """
    Full current snapshot: tasks, categories, tags and preferences.
    """
    return store.state


# PUBLIC_INTERFACE
@router.get("/stats", response_model=StatsOut, summary="Completion Stats")
def get_stats(store: TodoStore = Depends(get_store)) -> StatsOut:
    stats = completion_stats(store.state)
    return StatsOut(
        total=stats.total,
        completed=stats.completed,
        completion_rate=stats.completion_rate,
        pending=stats.pending,
        by_priority=stats.by_priority,
        overdue=stats.overdue,
    )


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new task, append it to the collection and return it.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TaskCreate, store: TodoStore = Depends(get_store)) -> Task:
    def build(state: TodoState) -> AddTodo:
        task = new_task(
            state.todos,
            title=payload.title,
            description=payload.description,
            due_date=payload.due_date,
            priority=payload.priority,
            category_id=payload.category_id,
            tags=payload.tags,
        )
        return AddTodo(payload=task)

    state = store.dispatch_with(build)
    return state.todos[-1]


# PUBLIC_INTERFACE
@router.put("/order", response_model=List[Task], summary="Reorder Todos")
def reorder_todos(payload: ReorderRequest, store: TodoStore = Depends(get_store)) -> List[Task]:
    """
    Manual drag-reorder. Ranks are reassigned to the new positions; ids not
    listed keep their relative order after the listed ones.
    """
    state = store.dispatch_with(
        lambda current: ReorderTodos(payload=tuple(apply_manual_order(current.todos, payload.ids)))
    )
    return list(state.todos)


# PUBLIC_INTERFACE
@router.patch("/filters", response_model=TodoState, summary="Update Filters")
def patch_filters(payload: FilterPatch, store: TodoStore = Depends(get_store)) -> TodoState:
    """
    Merge the supplied filter fields into the current filters.
    """
    return store.dispatch(SetFilter(payload=payload))


# PUBLIC_INTERFACE
@router.patch("/sort", response_model=TodoState, summary="Update Sort")
def patch_sort(payload: SortPatch, store: TodoStore = Depends(get_store)) -> TodoState:
    return store.dispatch(SetSort(payload=payload))


# PUBLIC_INTERFACE
@router.post("/sort/{option}", response_model=TodoState, summary="Select Sort Option")
def select_sort(option: SortOption, store: TodoStore = Depends(get_store)) -> TodoState:
    """
    Selecting the active option flips its direction; another option is
    selected ascending.
    """
    def build(state: TodoState) -> SetSort:
        chosen = next_sort(state.sort, option)
        return SetSort(payload=SortPatch(option=chosen.option, direction=chosen.direction))

    return store.dispatch_with(build)


# PUBLIC_INTERFACE
@router.patch("/theme", response_model=TodoState, summary="Update Theme")
def patch_theme(payload: ThemePatch, store: TodoStore = Depends(get_store)) -> TodoState:
    return store.dispatch(SetTheme(payload=payload))


# PUBLIC_INTERFACE
@router.put("/categories", response_model=TodoState, summary="Replace Categories")
def put_categories(payload: List[Category], store: TodoStore = Depends(get_store)) -> TodoState:
    return store.dispatch(SetCategories(payload=tuple(payload)))


# PUBLIC_INTERFACE
@router.put("/tags", response_model=TodoState, summary="Replace Tags")
def put_tags(payload: List[Tag], store: TodoStore = Depends(get_store)) -> TodoState:
    return store.dispatch(SetTags(payload=tuple(payload)))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=Task,
    summary="Get Todo",
    responses={404: {"description": "Todo not found"}},
)
def get_todo(todo_id: str, store: TodoStore = Depends(get_store)) -> Task:
    task = _find(store.state, todo_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return task


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=Task,
    summary="Edit Todo",
    description=(
        "Replace the editable fields of a task. Omitted fields go back to their "
        "defaults; id, completion, creation time and manual rank are kept."
    ),
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(todo_id: str, payload: TaskEdit, store: TodoStore = Depends(get_store)) -> Task:
    def build(state: TodoState) -> UpdateTodo:
        existing = _find(state, todo_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
        updated = edit_task(
            existing,
            title=payload.title,
            description=payload.description,
            due_date=payload.due_date,
            priority=payload.priority,
            category_id=payload.category_id,
            tags=payload.tags,
        )
        return UpdateTodo(payload=updated)

    state = store.dispatch_with(build)
    return _find(state, todo_id)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=Task,
    summary="Toggle Todo",
    responses={404: {"description": "Todo not found"}},
)
def toggle_todo(todo_id: str, store: TodoStore = Depends(get_store)) -> Task:
    """
    Flip the completion flag of a task.
    """
    state = store.dispatch(ToggleTodo(payload=todo_id))
    task = _find(state, todo_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return task


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    description="Delete a task by id. Deleting an unknown id is not an error.",
)
def delete_todo(todo_id: str, store: TodoStore = Depends(get_store)) -> None:
    store.dispatch(RemoveTodo(payload=todo_id))
    return None
