from __future__ import annotations

import logging
from threading import RLock
from typing import Annotated, Callable, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import (
    Category,
    PriorityFilter,
    SortDirection,
    SortOption,
    Tag,
    Task,
    Theme,
    TodoFilters,
    TodoSort,
)

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TodoState(BaseModel):
    """
    Immutable snapshot of everything the store owns: tasks, categories, tags
    and the filter/sort/theme preferences.
    """

    model_config = ConfigDict(frozen=True)

    todos: Tuple[Task, ...] = ()
    categories: Tuple[Category, ...] = ()
    tags: Tuple[Tag, ...] = ()
    filters: TodoFilters = TodoFilters()
    sort: TodoSort = TodoSort()
    theme: Theme = Theme()


# PUBLIC_INTERFACE
def initial_state(prefers_dark: bool = False) -> TodoState:
    """Return the startup snapshot, seeding dark mode from the host preference."""
    return TodoState(theme=Theme(is_dark=prefers_dark))


class FilterPatch(BaseModel):
    """Partial TodoFilters; only the fields that are set get applied."""

    search_term: Optional[str] = None
    priority: Optional[PriorityFilter] = None
    category_id: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    show_completed: Optional[bool] = None


class SortPatch(BaseModel):
    """Partial TodoSort."""

    option: Optional[SortOption] = None
    direction: Optional[SortDirection] = None


class ThemePatch(BaseModel):
    """Partial Theme. An explicit null background clears it."""

    name: Optional[str] = None
    background: Optional[str] = None
    is_dark: Optional[bool] = None


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class _Collection(_Action):
    """Action whose payload is a whole task collection; ids must be unique."""

    payload: Tuple[Task, ...]

    @model_validator(mode="after")
    def _unique_ids(self):
        seen = set()
        for task in self.payload:
            if task.id in seen:
                raise ValueError(f"duplicate todo id: {task.id}")
            seen.add(task.id)
        return self


class SetTodos(_Collection):
    type: Literal["set_todos"] = "set_todos"


class AddTodo(_Action):
    type: Literal["add_todo"] = "add_todo"
    payload: Task


class RemoveTodo(_Action):
    type: Literal["remove_todo"] = "remove_todo"
    payload: str


class ToggleTodo(_Action):
    type: Literal["toggle_todo"] = "toggle_todo"
    payload: str


class UpdateTodo(_Action):
    type: Literal["update_todo"] = "update_todo"
    payload: Task


class ReorderTodos(_Collection):
    type: Literal["reorder_todos"] = "reorder_todos"


class SetCategories(_Action):
    type: Literal["set_categories"] = "set_categories"
    payload: Tuple[Category, ...]


class SetTags(_Action):
    type: Literal["set_tags"] = "set_tags"
    payload: Tuple[Tag, ...]


class SetFilter(_Action):
    type: Literal["set_filter"] = "set_filter"
    payload: FilterPatch


class SetSort(_Action):
    type: Literal["set_sort"] = "set_sort"
    payload: SortPatch


class SetTheme(_Action):
    type: Literal["set_theme"] = "set_theme"
    payload: ThemePatch


Action = Annotated[
    Union[
        SetTodos,
        AddTodo,
        RemoveTodo,
        ToggleTodo,
        UpdateTodo,
        ReorderTodos,
        SetCategories,
        SetTags,
        SetFilter,
        SetSort,
        SetTheme,
    ],
    Field(discriminator="type"),
]


def _merge(current: BaseModel, patch: BaseModel, nullable: Iterable[str] = ()):
    allow_null = set(nullable)
    updates = {}
    for name in patch.model_fields_set:
        value = getattr(patch, name)
        if value is None and name not in allow_null:
            continue
        updates[name] = value
    return current.model_copy(update=updates)


# PUBLIC_INTERFACE
def reduce(state: TodoState, action: Action) -> TodoState:
    """
    Apply one action to a snapshot and return the resulting snapshot.

    The input snapshot is never modified. Actions addressing an id that is not
    in the collection leave the tasks unchanged.
    """
    if isinstance(action, SetTodos):
        return state.model_copy(update={"todos": tuple(action.payload)})

    if isinstance(action, AddTodo):
        return state.model_copy(update={"todos": state.todos + (action.payload,)})

    if isinstance(action, RemoveTodo):
        todos = tuple(t for t in state.todos if t.id != action.payload)
        return state.model_copy(update={"todos": todos})

    if isinstance(action, ToggleTodo):
        todos = tuple(
            t.model_copy(update={"completed": not t.completed}) if t.id == action.payload else t
            for t in state.todos
        )
        return state.model_copy(update={"todos": todos})

    if isinstance(action, UpdateTodo):
        todos = tuple(action.payload if t.id == action.payload.id else t for t in state.todos)
        return state.model_copy(update={"todos": todos})

    if isinstance(action, ReorderTodos):
        return state.model_copy(update={"todos": tuple(action.payload)})

    if isinstance(action, SetCategories):
        return state.model_copy(update={"categories": tuple(action.payload)})

    if isinstance(action, SetTags):
        return state.model_copy(update={"tags": tuple(action.payload)})

    if isinstance(action, SetFilter):
        return state.model_copy(update={"filters": _merge(state.filters, action.payload)})

    if isinstance(action, SetSort):
        return state.model_copy(update={"sort": _merge(state.sort, action.payload)})

    if isinstance(action, SetTheme):
        theme = _merge(state.theme, action.payload, nullable=("background",))
        return state.model_copy(update={"theme": theme})

    return state


class ActionConflictError(ValueError):
    """An action is well-formed but cannot apply to the current snapshot."""


# PUBLIC_INTERFACE
def check_action(state: TodoState, action: Action) -> None:
    """
    Raise ActionConflictError when applying the action would break task id
    uniqueness: adding an id already present, or a reorder that is not a
    permutation of the current collection.
    """
    if isinstance(action, AddTodo):
        if any(t.id == action.payload.id for t in state.todos):
            raise ActionConflictError(f"Todo id already exists: {action.payload.id}")
    elif isinstance(action, ReorderTodos):
        if sorted(t.id for t in action.payload) != sorted(t.id for t in state.todos):
            raise ActionConflictError("Reorder must list every existing todo exactly once")


Listener = Callable[[TodoState], None]
Builder = Callable[[TodoState], Action]


# PUBLIC_INTERFACE
class TodoStore:
    """
    Holder of the current snapshot. Actions are applied one at a time; readers
    only ever see a snapshot from before or after a whole action.
    """

    def __init__(self, state: Optional[TodoState] = None) -> None:
        self._lock = RLock()
        self._state = state if state is not None else initial_state()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> TodoState:
        with self._lock:
            return self._state

    def dispatch(self, action: Action) -> TodoState:
        """Apply an action, notify subscribers and return the new snapshot."""
        return self.dispatch_with(lambda state: action)

    def dispatch_with(self, build: Builder) -> TodoState:
        """
        Build an action from the current snapshot and apply it, all under the
        store lock, so no other action lands between the read and the write.
        An exception from build leaves the snapshot untouched.
        """
        with self._lock:
            action = build(self._state)
            self._state = reduce(self._state, action)
            state = self._state
            listeners = list(self._listeners)
        logger.debug("Applied %s (%d todos)", action.type, len(state.todos))
        for listener in listeners:
            listener(state)
        return state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe
