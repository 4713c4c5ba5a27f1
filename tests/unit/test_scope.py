"""Unit tests for scoped sub-tree proxies."""

import pytest

from arbor import ActionType, StateActions
from arbor.errors import StateClosedError
from arbor.tree import flatten, set_in
from tests.utils import record


@pytest.mark.unit
@pytest.mark.scope
def test_scope_reads_and_writes_relative_paths(state):
    """Scope paths are appended to the base path"""
    # Arrange
    alice = state.sub_handler("users.alice")

    # Act
    alice.set_in("name", "Alicia")

    # Assert
    assert state.peek_key("users.alice.name") == "Alicia"
    assert alice.peek_key("name") == "Alicia"
    assert alice.peek()["age"] == 30


@pytest.mark.unit
@pytest.mark.scope
def test_relative_tokens_escape_the_base(state):
    alice = state.sub_handler("users.alice")
    alice.set_in(["..", "bob", "name"], "Bob")
    assert state.peek_key("users.bob.name") == "Bob"
    assert alice.peek_key(["..", "bob", "name"]) == "Bob"
    assert alice.peek_key(["~", "usersettings", "theme"]) == "dark"


@pytest.mark.unit
@pytest.mark.scope
def test_scope_actions_use_whole_segments(state):
    """A scope on users never sees usersettings"""
    # Arrange
    users = state.sub_handler("users")
    seen = record(users.actions)

    # Act
    state.set_in("usersettings.theme", "light")
    state.set_in("users.alice.age", 31)

    # Assert
    assert len(seen.values) == 1
    assert seen.last.payload["path"] == "users.alice.age"


@pytest.mark.unit
@pytest.mark.scope
def test_scope_actions_ignore_pathless_actions(state):
    users = state.sub_handler("users")
    seen = record(users.actions)

    state.dispatch("CUSTOM", "no path here")

    assert seen.values == []


@pytest.mark.unit
@pytest.mark.scope
def test_scope_dispatch_rewrites_a_copy_of_the_payload(state):
    """The caller's payload dict is left as it was"""
    # Arrange
    alice = state.sub_handler("users.alice")
    payload = {"path": "name", "value": "Ally"}

    # Act
    alice.dispatch(ActionType.SET_IN, payload)

    # Assert
    assert payload == {"path": "name", "value": "Ally"}
    assert state.peek_key("users.alice.name") == "Ally"


@pytest.mark.unit
@pytest.mark.scope
def test_scope_dispatch_without_path_targets_the_base(state):
    todos = state.sub_handler("todos")
    todos.dispatch(StateActions.list_push(None, ["a"]))
    assert list(state.peek_key("todos")) == ["a"]


@pytest.mark.unit
@pytest.mark.scope
def test_scope_list_verbs_act_on_the_base(state):
    # Arrange
    todos = state.sub_handler("todos")

    # Act
    todos.list_push([3, 1, 2]).list_sort().list_unshift([0]).list_remove_at(1)
    todos.list_insert(1, [9]).list_remove_find(lambda n: n == 9).list_filter(
        lambda n: n != 0
    )

    # Assert
    assert list(state.peek_key("todos")) == [2, 3]


@pytest.mark.unit
@pytest.mark.scope
def test_scope_in_variants_act_below_the_base(state):
    users = state.sub_handler("users")

    users.patch_in("alice", {"email": "a@example.com"})
    users.apply_in("alice.age", lambda age: age + 1)
    users.delete_in("alice", "name")
    users.list_push_in("alice.tags", ["admin"])

    assert flatten(state.peek_key("users.alice")) == {
        "age": 31,
        "email": "a@example.com",
        "tags": ["admin"],
    }


@pytest.mark.unit
@pytest.mark.scope
def test_scope_source_follows_the_base_value(state):
    settings = state.sub_handler("usersettings")
    seen = record(settings.select_flatten())

    settings.set({"theme": "light"})

    assert seen.values == [{"theme": "dark"}, {"theme": "light"}]


@pytest.mark.unit
@pytest.mark.scope
def test_complete_removes_scope_processors_and_ends_streams(state):
    """Completing a scope undoes its registrations only"""
    # Arrange
    users = state.sub_handler("users")
    handle = users.register_processor("MARK", lambda s, a: set_in(s, ("scoped",), True))
    owner_handle = state.register_processor("MARK", lambda s, a: set_in(s, ("owned",), True))
    source = record(users.source)
    actions = record(users.actions)

    # Act
    users.complete()
    state.dispatch("MARK")

    # Assert
    assert handle.is_removed
    assert not owner_handle.is_removed
    assert state.peek_key("scoped") is None
    assert state.peek_key("owned") is True
    assert source.completed
    assert actions.completed


@pytest.mark.unit
@pytest.mark.scope
def test_completing_a_scope_completes_its_children(state):
    users = state.sub_handler("users")
    alice = users.sub_handler("alice")
    handle = alice.register_pre_processor("X", lambda s, a: a)
    names = record(alice.select("name"))

    users.complete()

    assert alice.is_completed
    assert handle.is_removed
    assert names.completed


@pytest.mark.unit
@pytest.mark.scope
def test_nested_scope_base_is_combined(state):
    alice = state.sub_handler("users").sub_handler("alice")
    assert alice.base_path == ("users", "alice")
    assert alice.peek_key("name") == "Alice"


@pytest.mark.unit
@pytest.mark.scope
def test_completed_scope_refuses_registrations(state):
    users = state.sub_handler("users")
    users.complete()

    with pytest.raises(StateClosedError):
        users.register_processor("X", lambda s, a: s)
    with pytest.raises(StateClosedError):
        users.register_async("LOAD", lambda s, a: None)
    with pytest.raises(StateClosedError):
        users.sub_handler("alice")


@pytest.mark.unit
@pytest.mark.scope
def test_completed_scope_streams_are_empty(state):
    users = state.sub_handler("users")
    users.complete()

    seen = record(users.select("alice"))

    assert seen.values == []
    assert seen.completed


@pytest.mark.unit
@pytest.mark.scope
def test_scope_async_registration_is_removed_on_complete(state):
    users = state.sub_handler("users")
    handle = users.register_async("LOAD", lambda s, a: None)

    users.complete()

    assert handle.is_removed
    state.register_async("LOAD", lambda s, a: None)
