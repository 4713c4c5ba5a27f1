"""
Arbor Errors
============

Exception hierarchy raised by the state container. Every error derives from
``StateError`` so callers can catch the whole family at once.
"""


class StateError(Exception):
    """Base class for all Arbor errors."""

    pass


class SingleInstanceViolation(StateError):
    """Raised when a second container is constructed while one is active."""

    pass


class TypeMismatchError(StateError, TypeError):
    """Raised when a verb addresses a value of the wrong variant."""

    pass


class ConflictError(StateError):
    """Raised when an async handler is already registered for a type."""

    pass


class StateClosedError(StateError):
    """Raised when dispatching into a completed container."""

    pass
