"""
Pydantic models for scratch spaces, their usage records and the
project environments they are attributed to.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from . import DEPOT_PATH

GLOBAL_OWNER = UUID(int=0)
"""Owner used for addressing when no owner identity is given."""

USAGE_LOG_NAME = "scratch_usage.toml"
DEFAULT_THROTTLE_HOURS = 24.0


class AttributionOutcome(str, Enum):
    """What a single record_access call ended up doing."""

    RECORDED = "recorded"
    THROTTLED = "throttled"
    UNRESOLVED = "unresolved"


class UsageEntry(BaseModel):
    """One attribution event in a space's usage log."""

    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    parent_projects: list[str] = Field(default_factory=list)

    def to_toml(self) -> dict:
        """Plain dict ready for tomli_w."""
        return {"time": self.time, "parent_projects": list(self.parent_projects)}


class ManifestEntry(BaseModel):
    """A dependency as listed in the active environment's manifest."""

    name: str
    uuid: UUID
    tree_hash: Optional[str] = None
    path: Optional[Path] = None
    version: Optional[str] = None


class PackageSpec(BaseModel):
    """Everything the source locator needs to find a dependency on disk."""

    name: str
    uuid: UUID
    tree_hash: Optional[str] = None
    path: Optional[Path] = None


class EnvironmentContext(BaseModel):
    """Snapshot of the currently active project environment.

    Attributes:
        project_uuid: Identity of the top-level project, if it declares one.
        project_name: Name of the top-level project, if it declares one.
        project_file: Path to the top-level project descriptor.
        manifest: Dependencies keyed by their UUID.
    """

    project_uuid: Optional[UUID] = None
    project_name: Optional[str] = None
    project_file: Path
    manifest: dict[UUID, ManifestEntry] = Field(default_factory=dict)


class SpaceInfo(BaseModel):
    """A space found on disk, with its most recent attribution."""

    owner: UUID
    key: str
    path: Path
    last_used: Optional[datetime] = None
    parent_projects: list[str] = Field(default_factory=list)

    @property
    def is_global(self) -> bool:
        """True for spaces that belong to the implicit global owner."""
        return self.owner == GLOBAL_OWNER


class SpacesConfig(BaseModel):
    """Persistent configuration for a depot's scratch spaces."""

    depot: Path = Path(DEPOT_PATH)
    throttle_window_hours: float = DEFAULT_THROTTLE_HOURS
    usage_log_name: str = USAGE_LOG_NAME
    project: Optional[Path] = None
