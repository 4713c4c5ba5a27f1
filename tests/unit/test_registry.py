"""Unit tests for the reducer arena and registration handles."""

import pytest

from arbor.registry import EntryArena, Handle, ReducerEntry


@pytest.fixture
def arena():
    return EntryArena("processors")


@pytest.mark.unit
@pytest.mark.pipeline
def test_arena_iterates_in_allocation_order(arena):
    """Entries come back oldest first"""
    # Arrange
    for name in ("a", "b", "c"):
        arena.allocate(ReducerEntry(name))

    # Act & Assert
    assert [e.for_type for e in arena] == ["a", "b", "c"]


@pytest.mark.unit
@pytest.mark.pipeline
def test_arena_ids_are_never_reused(arena):
    """Freeing an entry does not make its id available again"""
    # Arrange
    first = arena.allocate(ReducerEntry("a"))
    arena.free(first)

    # Act
    second = arena.allocate(ReducerEntry("b"))

    # Assert
    assert second != first
    assert first not in arena
    assert second in arena


@pytest.mark.unit
@pytest.mark.pipeline
def test_matching_skips_paused_and_foreign_entries(arena):
    """Only active entries for the type, or wildcards, match"""
    # Arrange
    arena.allocate(ReducerEntry("A"))
    paused_id = arena.allocate(ReducerEntry("A"))
    arena.allocate(ReducerEntry("B"))
    arena.allocate(ReducerEntry("*"))
    Handle(arena, paused_id).pause()

    # Act
    matched = arena.matching("A")

    # Assert
    assert [e.for_type for e in matched] == ["A", "*"]


@pytest.mark.unit
@pytest.mark.pipeline
def test_handle_pause_and_resume_toggle_the_entry(arena):
    """pause() and resume() flip the paused flag and are chainable"""
    # Arrange
    handle = Handle(arena, arena.allocate(ReducerEntry("A")))

    # Act & Assert
    assert handle.pause() is handle
    assert handle.is_paused
    handle.resume()
    assert not handle.is_paused


@pytest.mark.unit
@pytest.mark.pipeline
def test_removed_handle_becomes_inert(arena):
    """Every operation on a removed handle is a no-op"""
    # Arrange
    handle = Handle(arena, arena.allocate(ReducerEntry("A")))
    handle.remove()

    # Act
    handle.pause()
    handle.resume()
    handle.remove()

    # Assert
    assert handle.is_removed
    assert not handle.is_paused
    assert len(arena) == 0
    assert "removed" in repr(handle)


@pytest.mark.unit
@pytest.mark.pipeline
def test_stale_handle_cannot_touch_newer_entries(arena):
    """A removed handle never affects an entry allocated after it"""
    # Arrange
    stale = Handle(arena, arena.allocate(ReducerEntry("A")))
    stale.remove()
    fresh = Handle(arena, arena.allocate(ReducerEntry("A")))

    # Act
    stale.pause()
    stale.remove()

    # Assert
    assert not fresh.is_paused
    assert not fresh.is_removed
