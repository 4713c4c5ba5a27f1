"""
Test utilities for Arbor.

Helpers for recording what observables emit.
"""

from .recording import Recorder, record

__all__ = [
    "Recorder",
    "record",
]
