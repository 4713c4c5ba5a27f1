"""
Shared pytest fixtures and configuration for Arbor tests.
"""

import pytest
from reactivex.testing import TestScheduler

from arbor import ReactiveState
from arbor.global_state import _reset_active_state


@pytest.fixture(autouse=True)
def reset_active_state():
    """Release the process-wide container slot around each test."""
    _reset_active_state()
    yield
    _reset_active_state()


@pytest.fixture
def scheduler():
    """Virtual-time scheduler; nothing runs until it is advanced."""
    return TestScheduler()


@pytest.fixture
def state(scheduler):
    """A fresh container with a small user/settings tree."""
    return ReactiveState(
        {
            "users": {"alice": {"name": "Alice", "age": 30}},
            "usersettings": {"theme": "dark"},
            "todos": [],
        },
        scheduler=scheduler,
    )
