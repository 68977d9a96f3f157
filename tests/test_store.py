from __future__ import annotations

import random
import threading

import pytest
from pydantic import TypeAdapter, ValidationError

from taskflow.models import Category, Tag, TodoFilters
from taskflow.store import (
    Action,
    ActionConflictError,
    AddTodo,
    FilterPatch,
    RemoveTodo,
    ReorderTodos,
    SetCategories,
    SetFilter,
    SetSort,
    SetTags,
    SetTheme,
    SetTodos,
    SortPatch,
    ThemePatch,
    TodoState,
    TodoStore,
    ToggleTodo,
    UpdateTodo,
    check_action,
    initial_state,
    reduce,
)
from taskflow.tasks import apply_manual_order, new_task

from .conftest import make_task


def state_with(*tasks) -> TodoState:
    return TodoState(todos=tuple(tasks))


class TestTaskActions:
    def test_set_todos_replaces_collection(self):
        state = state_with(make_task("old"))
        new = reduce(state, SetTodos(payload=(make_task("a"), make_task("b"))))
        assert [t.id for t in new.todos] == ["a", "b"]

    def test_add_appends_and_keeps_existing_ranks(self):
        state = state_with(make_task("a", order=3), make_task("b", order=1))
        new = reduce(state, AddTodo(payload=make_task("c", order=7)))
        assert [(t.id, t.order) for t in new.todos] == [("a", 3), ("b", 1), ("c", 7)]

    def test_remove_by_id(self):
        state = state_with(make_task("a"), make_task("b"))
        new = reduce(state, RemoveTodo(payload="a"))
        assert [t.id for t in new.todos] == ["b"]

    def test_remove_missing_id_is_noop(self):
        state = state_with(make_task("a"), make_task("b"))
        new = reduce(state, RemoveTodo(payload="missing"))
        assert new == state

    def test_toggle_twice_restores_task(self):
        original = make_task("t1", description="keep me", priority="high", tags=("x",))
        state = state_with(original, make_task("t2"))
        once = reduce(state, ToggleTodo(payload="t1"))
        assert once.todos[0].completed is True
        assert once.todos[1] == state.todos[1]
        twice = reduce(once, ToggleTodo(payload="t1"))
        assert twice.todos[0] == original
        assert twice == state

    def test_toggle_missing_id_is_noop(self):
        state = state_with(make_task("a"))
        assert reduce(state, ToggleTodo(payload="zzz")) == state

    def test_update_replaces_whole_task(self):
        state = state_with(make_task("a", description="old", tags=("x", "y")), make_task("b"))
        replacement = make_task("a", title="New title")
        new = reduce(state, UpdateTodo(payload=replacement))
        assert new.todos[0] == replacement
        # no merge: fields absent from the replacement are gone
        assert new.todos[0].description is None
        assert new.todos[0].tags == ()
        assert new.todos[1] == state.todos[1]

    def test_update_missing_id_is_noop(self):
        state = state_with(make_task("a"))
        assert reduce(state, UpdateTodo(payload=make_task("nope"))) == state

    def test_reorder_keeps_task_fields(self):
        a, b, c = make_task("a", order=0), make_task("b", order=1), make_task("c", order=2)
        new = reduce(state_with(a, b, c), ReorderTodos(payload=(c, a, b)))
        assert list(new.todos) == [c, a, b]

    def test_reduce_does_not_touch_input(self):
        state = state_with(make_task("a"))
        reduce(state, ToggleTodo(payload="a"))
        reduce(state, RemoveTodo(payload="a"))
        assert state.todos[0].completed is False
        assert len(state.todos) == 1

    @pytest.mark.parametrize("seed", [1, 7, 42, 1234])
    def test_random_add_remove_toggle_sequences(self, seed):
        rng = random.Random(seed)
        state = TodoState()
        present = {}
        toggles = {}
        for step in range(200):
            op = rng.choice(["add", "remove", "toggle"])
            if op == "add":
                tid = f"t{step}"
                state = reduce(state, AddTodo(payload=make_task(tid)))
                present[tid] = True
                toggles[tid] = 0
            else:
                candidates = list(present) + ["ghost"]
                tid = rng.choice(candidates)
                if op == "remove":
                    state = reduce(state, RemoveTodo(payload=tid))
                    present.pop(tid, None)
                else:
                    state = reduce(state, ToggleTodo(payload=tid))
                    if tid in present:
                        toggles[tid] += 1
        assert [t.id for t in state.todos] == list(present)
        for t in state.todos:
            assert t.completed is (toggles[t.id] % 2 == 1)


class TestCollectionsAndPreferences:
    def test_set_categories_and_tags(self):
        cats = (Category(id="home", name="Home", color="#0f0"),)
        tags = (Tag(id="urgent", name="Urgent", color="#f00"),)
        state = reduce(TodoState(), SetCategories(payload=cats))
        state = reduce(state, SetTags(payload=tags))
        assert state.categories == cats
        assert state.tags == tags

    def test_set_filter_merges_named_fields_only(self):
        state = TodoState(filters=TodoFilters(search_term="milk", tags=("a",)))
        new = reduce(state, SetFilter(payload=FilterPatch(priority="high")))
        assert new.filters.priority == "high"
        assert new.filters.search_term == "milk"
        assert new.filters.tags == ("a",)
        assert new.filters.show_completed is True

    def test_set_filter_ignores_explicit_null(self):
        state = TodoState(filters=TodoFilters(priority="low"))
        new = reduce(state, SetFilter(payload=FilterPatch(priority=None, show_completed=False)))
        assert new.filters.priority == "low"
        assert new.filters.show_completed is False

    def test_set_sort_merges(self):
        new = reduce(TodoState(), SetSort(payload=SortPatch(option="priority")))
        assert new.sort.option == "priority"
        assert new.sort.direction == "desc"

    def test_set_theme_merges_and_clears_background(self):
        state = reduce(TodoState(), SetTheme(payload=ThemePatch(background="https://img/bg.png")))
        state = reduce(state, SetTheme(payload=ThemePatch(is_dark=True)))
        assert state.theme.background == "https://img/bg.png"
        assert state.theme.is_dark is True
        assert state.theme.name == "system"
        cleared = reduce(state, SetTheme(payload=ThemePatch(background=None)))
        assert cleared.theme.background is None
        assert cleared.theme.is_dark is True

    def test_initial_state_defaults(self):
        state = initial_state(prefers_dark=True)
        assert state.todos == ()
        assert state.filters == TodoFilters()
        assert state.sort.option == "created_at"
        assert state.sort.direction == "desc"
        assert state.theme.is_dark is True


class TestActionParsing:
    adapter = TypeAdapter(Action)

    def test_parses_tagged_actions(self):
        action = self.adapter.validate_python({"type": "toggle_todo", "payload": "t1"})
        assert isinstance(action, ToggleTodo)
        patch = self.adapter.validate_python({"type": "set_filter", "payload": {"search_term": "x"}})
        assert isinstance(patch, SetFilter)
        assert patch.payload.model_fields_set == {"search_term"}

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"type": "explode", "payload": None})

    def test_rejects_task_with_blank_title(self):
        with pytest.raises(ValidationError):
            self.adapter.validate_python(
                {
                    "type": "add_todo",
                    "payload": {
                        "id": "a",
                        "title": "   ",
                        "created_at": "2024-01-01",
                        "updated_at": "2024-01-01",
                    },
                }
            )

    @pytest.mark.parametrize("action_type", ["set_todos", "reorder_todos"])
    def test_rejects_duplicate_ids_in_collection(self, action_type):
        task = make_task("a").model_dump(mode="json")
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"type": action_type, "payload": [task, task]})


class TestCheckAction:
    def test_add_with_existing_id_conflicts(self):
        state = state_with(make_task("a"))
        with pytest.raises(ActionConflictError):
            check_action(state, AddTodo(payload=make_task("a", title="again")))
        check_action(state, AddTodo(payload=make_task("b")))

    def test_reorder_must_be_a_permutation(self):
        a, b = make_task("a"), make_task("b")
        state = state_with(a, b)
        with pytest.raises(ActionConflictError):
            check_action(state, ReorderTodos(payload=(b,)))
        with pytest.raises(ActionConflictError):
            check_action(state, ReorderTodos(payload=(b, a, make_task("c"))))
        check_action(state, ReorderTodos(payload=(b, a)))

    def test_other_actions_pass(self):
        state = state_with(make_task("a"))
        check_action(state, ToggleTodo(payload="ghost"))
        check_action(state, SetTodos(payload=(make_task("x"),)))


class TestTodoStore:
    def test_dispatch_updates_state_and_notifies(self):
        store = TodoStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        state = store.dispatch(AddTodo(payload=make_task("a")))
        assert store.state is state
        assert seen == [state]
        unsubscribe()
        store.dispatch(RemoveTodo(payload="a"))
        assert len(seen) == 1
        assert store.state.todos == ()

    def test_unsubscribe_twice_is_harmless(self):
        store = TodoStore()
        unsubscribe = store.subscribe(lambda s: None)
        unsubscribe()
        unsubscribe()

    def test_default_store_starts_empty(self):
        assert TodoStore().state == initial_state()

    def test_failed_build_leaves_state_untouched(self):
        store = TodoStore(state_with(make_task("a")))
        before = store.state

        def build(state):
            raise ActionConflictError("nope")

        with pytest.raises(ActionConflictError):
            store.dispatch_with(build)
        assert store.state is before

    def test_dispatch_with_blocks_other_actions_while_building(self):
        store = TodoStore(state_with(make_task("a")))
        building = threading.Event()
        release = threading.Event()

        def build(state):
            building.set()
            release.wait(5)
            return ReorderTodos(payload=tuple(apply_manual_order(state.todos, ["a"])))

        reorder = threading.Thread(target=store.dispatch_with, args=(build,))
        reorder.start()
        assert building.wait(5)
        add = threading.Thread(target=store.dispatch, args=(AddTodo(payload=make_task("b")),))
        add.start()
        add.join(0.2)
        assert add.is_alive()

        release.set()
        reorder.join(5)
        add.join(5)
        assert [t.id for t in store.state.todos] == ["a", "b"]

    def test_concurrent_adds_get_distinct_ranks(self):
        store = TodoStore()

        def add(n):
            store.dispatch_with(lambda state: AddTodo(payload=new_task(state.todos, title=f"task {n}")))

        threads = [threading.Thread(target=add, args=(n,)) for n in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)
        assert sorted(t.order for t in store.state.todos) == list(range(20))
