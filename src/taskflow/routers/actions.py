from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError
from pydantic import TypeAdapter, ValidationError

from ..store import Action, ActionConflictError, TodoState, TodoStore, check_action
from .todos import get_store

router = APIRouter(
    prefix="/api/v1/actions",
    tags=["actions"],
)

_action_adapter: TypeAdapter = TypeAdapter(Action)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoState,
    summary="Dispatch Action",
    description=(
        "Apply one store action and return the new snapshot. The body is an "
        "object with a `type` (set_todos, add_todo, remove_todo, toggle_todo, "
        "update_todo, reorder_todos, set_categories, set_tags, set_filter, "
        "set_sort, set_theme) and its `payload`."
    ),
    responses={
        409: {"description": "Action would duplicate a todo id or drop todos from a reorder"},
        422: {"description": "Unknown action type or malformed payload"},
    },
)
def dispatch_action(
    body: Dict[str, Any] = Body(..., examples=[{"type": "toggle_todo", "payload": "a1b2"}]),
    store: TodoStore = Depends(get_store),
) -> TodoState:
    try:
        action = _action_adapter.validate_python(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e

    def build(state: TodoState) -> Action:
        check_action(state, action)
        return action

    try:
        return store.dispatch_with(build)
    except ActionConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
