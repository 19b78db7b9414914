"""Exceptions raised by the battle domain."""

from __future__ import annotations


class InvariantViolation(RuntimeError):
    """Raised when the battle state contradicts the rules model.

    These signal modelling bugs rather than bad input and must not be caught
    by the engine.
    """


class IllegalAction(Exception):
    """Raised by an action handler, before any mutation, when the action is not
    legal in the current state.  The engine turns it into an ignored step."""
