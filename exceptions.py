# exceptions.py
"""
Custom exceptions for the Court Rotation engine.

This module defines domain-specific exceptions for better error handling
and debugging. Running short of players is never one of them: every entry
point degrades to emptier courts and a longer waiting list instead.
"""


class RotationAppError(Exception):
    """Base exception for all application errors."""

    pass


class SessionError(RotationAppError):
    """Raised when a session operation cannot be applied."""

    pass


class OptimizerError(RotationAppError):
    """Raised when the partition solver fails to find a solution."""

    pass


class ValidationError(RotationAppError):
    """Raised when input validation fails."""

    pass
