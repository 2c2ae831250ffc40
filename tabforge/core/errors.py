"""Engine error taxonomy.

Every error is raised synchronously with a human-readable message.  The
engine is deterministic, so nothing here is ever retried internally.
"""

from __future__ import annotations


class TabEngineError(Exception):
    """Base class for all engine failures."""


class NotFound(TabEngineError):
    """A referenced note, chord, lane, or canvas does not exist."""


class InvalidSelection(TabEngineError):
    """The selection cannot form the requested structure (e.g. a one-note chord)."""


class InvalidOperation(TabEngineError):
    """The request is semantically impossible (e.g. removing the last lane)."""


class InvalidRange(InvalidOperation):
    """A time or index falls outside the span it must lie in."""
