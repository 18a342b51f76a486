"""
Access attribution: who is using which space.

A garbage collector needs to know whether a space is still referenced
and how stale it is. Spaces have no declarative owner list, so usage is
recorded at access time: every obtain attributes the space to the
project file that currently depends on the owner, by appending to the
space's usage log.

Hot loops call get_space() constantly, so writes are throttled to one
per space per window (24 hours by default) within a process. An owner
that cannot be resolved to an existing project file is skipped without
touching the throttle table, so the next access retries resolution.
That space will simply age out as an orphan if it never resolves.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union
from uuid import UUID

from .addressing import OwnerLike, normalize_owner
from .environment import PROJECT_FILENAME, EnvironmentProvider, SourceLocator
from .errors import EnvironmentUnavailable, PackageNotInstalled
from .models import (
    DEFAULT_THROTTLE_HOURS,
    GLOBAL_OWNER,
    USAGE_LOG_NAME,
    AttributionOutcome,
    PackageSpec,
    UsageEntry,
)
from .usage_log import append_usage

logger = logging.getLogger("scratchspaces.attribution")

DEFAULT_THROTTLE_WINDOW = timedelta(hours=DEFAULT_THROTTLE_HOURS)


class AccessAttributor:
    """Records throttled usage entries for spaces.

    Owns the throttle table: space path -> time of the last successful
    write. Entries only ever come from successful writes and only leave
    through forget() or reset().

    Args:
        environment: Describes the active project environment.
        locator: Finds dependency sources on disk.
        global_project: Project file that the global owner is attributed to.
        window: Minimum interval between two writes for one space.
        log_name: File name of the usage log inside each space.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        environment: EnvironmentProvider,
        locator: SourceLocator,
        global_project: Path,
        window: timedelta = DEFAULT_THROTTLE_WINDOW,
        log_name: str = USAGE_LOG_NAME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.environment = environment
        self.locator = locator
        self.global_project = Path(global_project)
        self.window = window
        self.log_name = log_name
        self._clock = clock
        self._last_write: dict[str, float] = {}

    # ------------------------------------------------------------------
    # Throttle table
    # ------------------------------------------------------------------

    def last_attributed(self, space_path: Union[str, Path]) -> Optional[float]:
        """Epoch time of the last write for ``space_path`` in this process."""
        return self._last_write.get(str(space_path))

    def forget(self, space_path: Union[str, Path]) -> None:
        """Drop the throttle entry for one space."""
        self._last_write.pop(str(space_path), None)

    def reset(self) -> None:
        """Drop every throttle entry."""
        self._last_write.clear()

    @property
    def tracked(self) -> list[str]:
        """Space paths currently present in the throttle table."""
        return sorted(self._last_write)

    # ------------------------------------------------------------------
    # Owner resolution
    # ------------------------------------------------------------------

    def find_project_file(self, owner: Optional[UUID]) -> Optional[Path]:
        """Resolve the project file a space owned by ``owner`` belongs to.

        The global owner always resolves to the global project file.
        Any other owner resolves to the active project's own file when
        it is that project, or to the Project.toml in the source tree of
        the matching manifest dependency when that file exists.

        Args:
            owner: Owner identity, or None for the global owner.

        Returns:
            The project file, or None when the owner cannot be attributed.
        """
        if owner is None or owner == GLOBAL_OWNER:
            return self.global_project

        try:
            context = self.environment.load()
        except EnvironmentUnavailable as exc:
            logger.debug("No environment to attribute %s to: %s", owner, exc)
            return None

        if context.project_uuid is not None and context.project_uuid == owner:
            return context.project_file

        entry = context.manifest.get(owner)
        if entry is None:
            return None

        spec = PackageSpec(
            name=entry.name,
            uuid=owner,
            tree_hash=entry.tree_hash,
            path=entry.path,
        )
        try:
            source_dir = self.locator.source_path(spec)
        except PackageNotInstalled as exc:
            logger.debug("Owner %s is in the manifest but not installed: %s", owner, exc)
            return None

        project_file = source_dir / PROJECT_FILENAME
        if project_file.is_file():
            return project_file
        return None

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_access(
        self,
        owner: OwnerLike,
        space_path: Union[str, Path],
    ) -> AttributionOutcome:
        """Attribute an access of ``space_path`` to ``owner``'s project.

        Args:
            owner: Owner UUID (or its string form), or None for the global owner.
            space_path: The space directory being accessed.

        Returns:
            AttributionOutcome: RECORDED, THROTTLED or UNRESOLVED.

        Raises:
            InvalidOwnerError: If ``owner`` is malformed.
            UsageLogWriteError: If the usage entry could not be appended.
        """
        owner = normalize_owner(owner)
        key = str(space_path)
        now = self._clock()
        last = self._last_write.get(key)
        if last is not None and last >= now - self.window.total_seconds():
            logger.debug("Usage of %s already recorded at %s", key, last)
            return AttributionOutcome.THROTTLED

        project_file = self.find_project_file(owner)
        if project_file is None:
            logger.debug("Could not attribute %s to owner %s; not tracking", key, owner)
            return AttributionOutcome.UNRESOLVED

        entry = UsageEntry(
            time=datetime.fromtimestamp(now, timezone.utc),
            parent_projects=[str(project_file)],
        )
        append_usage(space_path, entry, self.log_name)
        self._last_write[key] = now
        logger.info("Attributed %s to %s", key, project_file)
        return AttributionOutcome.RECORDED
