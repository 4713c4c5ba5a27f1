"""
Integration tests for the container as a whole: re-entrant dispatch,
structural sharing, lifecycle and the single-instance rule.
"""

import pytest
import reactivex

from arbor import (
    ReactiveState,
    StateActions,
    coerce,
    get_active_state,
)
from arbor.errors import SingleInstanceViolation, StateClosedError
from tests.utils import record


@pytest.mark.integration
def test_reentrant_dispatch_is_queued_after_the_current_pass(state):
    """A subscriber that dispatches sees its action run after the current one"""
    # Arrange
    order = []

    def on_action(action):
        order.append(str(action.type))
        if action.type == "FIRST":
            state.dispatch("SECOND")
            order.append("after-dispatch")

    state.actions.subscribe(on_next=on_action)

    # Act
    state.dispatch("FIRST")

    # Assert
    assert order == ["FIRST", "after-dispatch", "SECOND"]


@pytest.mark.integration
def test_state_subscriber_sees_new_snapshot_before_actions(state):
    """By the time an action is surfaced its snapshot is current"""
    # Arrange
    observed = []
    state.on("@@set-in").subscribe(on_next=lambda a: observed.append(state.peek_key("x")))

    # Act
    state.set_in("x", 1)

    # Assert
    assert observed == [1]


@pytest.mark.integration
def test_failure_in_queued_action_does_not_drop_the_rest(state):
    """Every queued pass runs; the first error is raised afterwards"""
    # Arrange
    def explode(s, a):
        raise ValueError("queued failure")

    state.register_processor("EXPLODE", explode)

    def chain(action):
        if action.type == "START":
            state.dispatch("EXPLODE")
            state.set_in("reached", True)

    state.actions.subscribe(on_next=chain)

    # Act & Assert
    with pytest.raises(ValueError, match="queued failure"):
        state.dispatch("START")
    assert state.peek_key("reached") is True


@pytest.mark.integration
def test_failing_state_subscriber_still_commits_the_pass(state, scheduler):
    """The snapshot, the action and its PostAction all go out together"""
    # Arrange
    def reject_one(value):
        if value == 1:
            raise RuntimeError("select subscriber failed")

    state.select("a").subscribe(on_next=reject_one)
    actions = record(state.on("@@set-in"))
    scoped = record(state.sub_handler("a").actions)
    posts = record(state.post_actions)

    # Act
    with pytest.raises(RuntimeError, match="select subscriber failed"):
        state.set_in("a", 1)
    scheduler.advance_by(10)

    # Assert
    assert state.peek_key("a") == 1
    assert len(actions.values) == 1
    assert len(scoped.values) == 1
    assert len(posts.values) == 1
    assert posts.last.final_state is state.peek()


@pytest.mark.integration
def test_containers_built_from_one_tree_share_untouched_subtrees():
    """Sequential containers over the same tree keep unchanged parts shared"""
    # Arrange
    tree = coerce({"left": {"deep": {"value": 1}}, "right": {"value": 2}})

    # Act
    first = ReactiveState(tree)
    first.set_in("left.deep.value", 10)
    first_left = first.peek_key("left")
    first_right = first.peek_key("right")
    first.complete()

    second = ReactiveState(tree)
    second.set_in("right.value", 20)

    # Assert
    assert first_right is tree["right"]
    assert second.peek_key("left") is tree["left"]
    assert first_left is not tree["left"]
    assert tree["left"]["deep"]["value"] == 1
    second.complete()


@pytest.mark.integration
def test_only_one_live_container_per_process(state):
    """A second container fails until the first one is completed"""
    with pytest.raises(SingleInstanceViolation):
        ReactiveState()

    assert get_active_state() is state
    state.complete()
    assert get_active_state() is None

    replacement = ReactiveState()
    assert get_active_state() is replacement


@pytest.mark.integration
def test_completed_container_refuses_dispatch(state):
    """After complete() every stream has ended and dispatch raises"""
    # Arrange
    source = record(state.source)
    actions = record(state.actions)
    post = record(state.post_actions)

    # Act
    state.complete()
    state.complete()

    # Assert
    assert state.is_completed
    assert source.completed and actions.completed and post.completed
    with pytest.raises(StateClosedError):
        state.set_in("x", 1)


@pytest.mark.integration
def test_context_manager_completes_the_container(scheduler):
    with ReactiveState({"a": 1}, scheduler=scheduler) as container:
        container.set_in("a", 2)
    assert container.is_completed
    assert get_active_state() is None


@pytest.mark.integration
def test_todo_workflow_through_a_scope(state, scheduler):
    """A realistic flow combining scopes, async loading and selections"""
    # Arrange
    todos = state.sub_handler("todos")
    titles = record(
        state.select_flatten("todos", map=lambda items, _: [t["title"] for t in items])
    )
    loader = todos.register_async(
        "LOAD_TODOS", lambda s, a: reactivex.of([{"title": "seed", "done": False}])
    )
    loader.on_next(lambda items: StateActions.set_in("todos", items))

    # Act
    state.dispatch("LOAD_TODOS")
    todos.list_push([{"title": "write tests", "done": False}])
    todos.apply_in("0.done", lambda done: not done)
    todos.list_filter(lambda t: not t["done"])
    scheduler.advance_by(10)

    # Assert
    # Toggling "done" changes the subtree, so the mapped titles repeat once
    assert titles.values == [
        [],
        ["seed"],
        ["seed", "write tests"],
        ["seed", "write tests"],
        ["write tests"],
    ]
    assert state.peek_key("todos.0.title") == "write tests"
