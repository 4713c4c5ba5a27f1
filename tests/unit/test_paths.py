"""Unit tests for the path algebra."""

import pytest

from arbor.paths import combine_paths, ensure_array, is_prefix, resolve_path, to_path


@pytest.mark.unit
@pytest.mark.paths
class TestEnsureArray:
    """Normalizing path definitions into segment tuples."""

    def test_string_paths_split_on_dots(self):
        """Dot-separated strings become one segment per key."""
        assert ensure_array("users.alice.name") == ("users", "alice", "name")

    def test_sequences_are_taken_as_segmented(self):
        """Lists keep their segments as they are, including dots inside keys."""
        assert ensure_array(["a.b", "c"]) == ("a.b", "c")

    def test_empty_string_and_none_denote_the_root(self):
        """The root path has no segments."""
        assert ensure_array("") == ()
        assert ensure_array(None) == ()

    def test_bare_integer_is_a_single_index_segment(self):
        """An integer path addresses a single list index."""
        assert ensure_array(3) == (3,)

    def test_combine_paths_concatenates_without_resolving(self):
        """Combining keeps relative tokens for later resolution."""
        assert combine_paths("users", ["..", "settings"]) == ("users", "..", "settings")


@pytest.mark.unit
@pytest.mark.paths
class TestResolvePath:
    """Applying the relative tokens ``~``, ``..`` and ``.``."""

    def test_parent_token_pops_one_level(self):
        assert resolve_path(["a", "b", "..", "c"]) == ("a", "c")

    def test_root_token_resets_the_path(self):
        assert resolve_path(["a", "~", "b"]) == ("b",)

    def test_current_token_is_ignored(self):
        assert resolve_path(["a", ".", "b"]) == ("a", "b")

    def test_parent_token_at_root_is_a_no_op(self):
        """Going above the root does not raise."""
        assert resolve_path([".."]) == ()
        assert resolve_path(["..", "..", "a"]) == ("a",)

    def test_to_path_resolves_strings(self):
        """``to_path`` splits and resolves in one go."""
        assert to_path("users.alice.~.settings") == ("settings",)


@pytest.mark.unit
@pytest.mark.paths
class TestIsPrefix:
    """Segment-wise prefix comparison used by scopes."""

    def test_whole_segments_match(self):
        assert is_prefix(("users",), ("users", "alice"))

    def test_partial_segment_does_not_match(self):
        """``users`` is not a prefix of ``usersettings``."""
        assert not is_prefix(("users",), ("usersettings",))
        assert not is_prefix(("users",), ("userself", "name"))

    def test_longer_prefix_never_matches(self):
        assert not is_prefix(("a", "b"), ("a",))

    def test_integer_and_string_indexes_compare_equal(self):
        assert is_prefix(("todos", 0), ("todos", "0", "title"))

    def test_root_is_a_prefix_of_everything(self):
        assert is_prefix((), ("anything",))
