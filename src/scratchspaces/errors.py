"""
Error taxonomy for scratch spaces.

Misuse fails fast at addressing time. An owner that cannot be resolved
is not an error at all; EnvironmentUnavailable and PackageNotInstalled
only travel between the collaborators and the attributor, which turns
them into a silent skip.
"""

from __future__ import annotations


class SpaceError(Exception):
    """Base class for every error raised by scratchspaces."""


class InvalidOwnerError(SpaceError, ValueError):
    """Raised when an owner identity is not a UUID or a UUID string."""


class InvalidKeyError(SpaceError, ValueError):
    """Raised when a space key is empty or not a string."""


class EnvironmentUnavailable(SpaceError):
    """Raised when no project environment is active or it cannot be read."""


class PackageNotInstalled(SpaceError):
    """Raised when a dependency has no source directory on disk."""


class AttributionError(SpaceError):
    """Raised when a resolved attribution could not be persisted."""


class UsageLogWriteError(AttributionError):
    """Raised when appending to a space's usage log fails."""
