"""Deterministic (owner, key) -> path mapping."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from .errors import InvalidKeyError, InvalidOwnerError
from .models import GLOBAL_OWNER
from .roots import RootResolver

OwnerLike = Optional[Union[UUID, str]]


def normalize_owner(owner: OwnerLike) -> Optional[UUID]:
    """Coerce an owner argument to a UUID, keeping None as None.

    Args:
        owner: A UUID, its canonical string form, or None.

    Returns:
        The parsed UUID, or None for the global owner.

    Raises:
        InvalidOwnerError: If ``owner`` is neither None, a UUID nor a UUID string.
    """
    if owner is None or isinstance(owner, UUID):
        return owner
    if isinstance(owner, str):
        try:
            return UUID(owner)
        except ValueError as exc:
            raise InvalidOwnerError(f"Not a valid owner UUID: {owner!r}") from exc
    raise InvalidOwnerError(f"Owner must be a UUID, a UUID string or None, got {type(owner).__name__}")


def owner_segment(owner: OwnerLike) -> str:
    """Directory name for an owner; the all-zero UUID stands in for None."""
    normalized = normalize_owner(owner)
    return str(GLOBAL_OWNER if normalized is None else normalized)


def check_key(key: object) -> str:
    """Validate a space key and return it unchanged.

    A key names exactly one directory below its owner directory.

    Raises:
        InvalidKeyError: If ``key`` is not a non-empty string, is "." or "..",
            or contains a path separator.
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"Space key must be a non-empty string, got {key!r}")
    if key in (os.curdir, os.pardir):
        raise InvalidKeyError(f"Space key cannot be {key!r}")
    separators = {"/", os.sep, os.altsep} - {None}
    if os.path.isabs(key) or any(sep in key for sep in separators):
        raise InvalidKeyError(f"Space key must be a single path component, got {key!r}")
    return key


def space_path(resolver: RootResolver, key: str, owner: OwnerLike = None) -> Path:
    """Path of the space ``key`` owned by ``owner`` under the active root.

    Does not touch the filesystem.
    """
    return resolver.resolve(owner_segment(owner), check_key(key))
