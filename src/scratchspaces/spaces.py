"""
Scratch space lifecycle: obtain, delete and clear.

A scratch space is a directory keyed by (owner, key) that a component
can use as a mutable local cache. Spaces may disappear at any time:
everything inside must be nonessential or easily recreated. Lifecycle
guarantees bound how long a space lives, never how short.

Layout:
    <depot>/scratchspaces/
    └── <owner-uuid>/            # 00000000-... for the global owner
        └── <key>/
            └── scratch_usage.toml

Usage:
    spaces = ScratchSpaces(depot=Path("~/.scratchdepot"))
    cache = spaces.get_space("downloads", owner=MY_UUID)

    with spaces.spaces_directory("/tmp/sandbox"):
        spaces.get_space("scratch")   # lands in /tmp/sandbox/0000.../scratch
"""

from __future__ import annotations

import logging
import shutil
import time
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar, Union
from uuid import UUID

from . import addressing
from .addressing import OwnerLike, normalize_owner
from .attribution import AccessAttributor
from .config import load_config
from .environment import (
    DepotSourceLocator,
    EnvironmentProvider,
    ProjectEnvironment,
    SourceLocator,
    active_project_file,
    default_project_file,
)
from .errors import AttributionError
from .models import SpaceInfo, SpacesConfig
from .roots import RootResolver
from .usage_log import read_usage

logger = logging.getLogger("scratchspaces.spaces")

T = TypeVar("T")


class ScratchSpaces:
    """Creates, attributes and removes scratch spaces for one depot.

    Holds the two pieces of mutable state the subsystem needs: the root
    override and the attribution throttle table. Use one instance per
    process (see default_spaces()) so that throttling is shared.

    Args:
        config: Depot configuration. Loaded from the depot when omitted.
        depot: Depot directory, used only when ``config`` is omitted.
        environment: Active-environment provider. Defaults to a
            ProjectEnvironment for the configured project.
        locator: Dependency source locator. Defaults to the depot's packages/.
        clock: Epoch-seconds clock used for throttling and entry timestamps.
    """

    def __init__(
        self,
        config: Optional[SpacesConfig] = None,
        depot: Optional[Union[str, Path]] = None,
        environment: Optional[EnvironmentProvider] = None,
        locator: Optional[SourceLocator] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or load_config(depot)
        depot_dir = self.config.depot.expanduser()
        self.resolver = RootResolver(depot_dir)
        self.attributor = AccessAttributor(
            environment=environment
            or ProjectEnvironment(active_project_file(depot_dir, self.config.project)),
            locator=locator or DepotSourceLocator(depot_dir),
            global_project=default_project_file(depot_dir),
            window=timedelta(hours=self.config.throttle_window_hours),
            log_name=self.config.usage_log_name,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def spaces_dir(self, *segments: str) -> Path:
        """Path inside the active scratch space root."""
        return self.resolver.resolve(*segments)

    def space_path(self, key: str, owner: OwnerLike = None) -> Path:
        """Path of a space, without creating it.

        Raises:
            InvalidOwnerError: If ``owner`` is not a UUID, UUID string or None.
            InvalidKeyError: If ``key`` is not a single directory name.
        """
        return addressing.space_path(self.resolver, key, owner)

    @contextmanager
    def spaces_directory(self, root: Union[str, Path]) -> Iterator[Path]:
        """Use ``root`` as the only scratch space root inside a with-block.

        New spaces are created there, deletions only affect it, and the
        depot's own scratchspaces/ directory is not searched.
        """
        with self.resolver.override_root(root) as active:
            yield active

    def with_spaces_directory(self, root: Union[str, Path], action: Callable[[], T]) -> T:
        """Run ``action`` with ``root`` as the scratch space root."""
        return self.resolver.run_with_root(root, action)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get_space(self, key: str, owner: OwnerLike = None) -> Path:
        """Return the path to a space, creating it if needed.

        With an owner, the space is namespaced by that owner's UUID and its
        lifetime is tied to the project that depends on the owner. Without
        one, a global space is used.

        Access is attributed for garbage collection; failing to attribute
        never fails the call.

        Args:
            key: Space name, used verbatim as a directory name.
            owner: Owner UUID (or its string form), or None for global.

        Returns:
            Path: The space directory, which exists on return.

        Raises:
            InvalidOwnerError: If ``owner`` is malformed.
            InvalidKeyError: If ``key`` is not a single directory name.
            OSError: If the directory cannot be created.
        """
        owner_id = normalize_owner(owner)
        path = self.space_path(key, owner_id)
        path.mkdir(parents=True, exist_ok=True)

        try:
            self.attributor.record_access(owner_id, path)
        except AttributionError as exc:
            logger.warning("Could not record usage of %s: %s", path, exc)
        return path

    def delete_space(self, key: str, owner: OwnerLike = None) -> None:
        """Delete a space and everything in it.

        A space that does not exist is not an error. The space's throttle
        entry is dropped so the next get_space() attributes it again.

        Raises:
            OSError: If an existing space cannot be removed.
        """
        path = self.space_path(key, owner)
        _remove_tree(path)
        self.attributor.forget(path)
        logger.info("Deleted scratch space %s", path)

    def clear_spaces(self) -> None:
        """Delete every space under the active root and reset throttling.

        Raises:
            OSError: If the root exists but cannot be removed.
        """
        root = self.spaces_dir()
        _remove_tree(root)
        self.attributor.reset()
        logger.info("Cleared all scratch spaces under %s", root)

    def for_owner(self, owner: OwnerLike) -> OwnerSpaces:
        """Bind an owner once, for components that know their own identity."""
        return OwnerSpaces(self, normalize_owner(owner))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def list_spaces(self) -> list[SpaceInfo]:
        """List spaces under the active root with their latest attribution.

        Directories whose name is not a UUID are skipped.
        """
        root = self.spaces_dir()
        if not root.is_dir():
            return []

        found: list[SpaceInfo] = []
        for owner_dir in sorted(root.iterdir()):
            if not owner_dir.is_dir():
                continue
            try:
                owner_id = UUID(owner_dir.name)
            except ValueError:
                continue
            for space_dir in sorted(owner_dir.iterdir()):
                if not space_dir.is_dir():
                    continue
                info = SpaceInfo(owner=owner_id, key=space_dir.name, path=space_dir)
                entries = read_usage(space_dir, self.config.usage_log_name)
                if entries:
                    info.last_used = entries[-1].time
                    info.parent_projects = entries[-1].parent_projects
                found.append(info)
        return found


class OwnerSpaces:
    """Scratch spaces bound to a single owner.

    Typically created once as a module constant:

        SPACES = default_spaces().for_owner("7876af07-990d-54b4-ab0e-23690620f79a")
        SPACES.get("index-cache")
    """

    def __init__(self, spaces: ScratchSpaces, owner: Optional[UUID]) -> None:
        self.spaces = spaces
        self.owner = owner

    def path(self, key: str) -> Path:
        return self.spaces.space_path(key, self.owner)

    def get(self, key: str) -> Path:
        return self.spaces.get_space(key, self.owner)

    def delete(self, key: str) -> None:
        self.spaces.delete_space(key, self.owner)


def _remove_tree(path: Path) -> None:
    """rm -rf that treats a missing path as success."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


# ---------------------------------------------------------------------------
# Process-wide default instance
# ---------------------------------------------------------------------------

_default: Optional[ScratchSpaces] = None


def default_spaces() -> ScratchSpaces:
    """Get or create the process-wide ScratchSpaces for the default depot."""
    global _default
    if _default is None:
        _default = ScratchSpaces()
    return _default


def set_default_spaces(spaces: Optional[ScratchSpaces]) -> None:
    """Replace the process-wide instance; None rebuilds it on next use."""
    global _default
    _default = spaces


def spaces_dir(*segments: str) -> Path:
    """Path inside the default instance's active root."""
    return default_spaces().spaces_dir(*segments)


def space_path(key: str, owner: OwnerLike = None) -> Path:
    """Path of a space in the default instance, without creating it."""
    return default_spaces().space_path(key, owner)


def get_space(key: str, owner: OwnerLike = None) -> Path:
    """Obtain or create a space in the default instance."""
    return default_spaces().get_space(key, owner)


def delete_space(key: str, owner: OwnerLike = None) -> None:
    """Delete a space from the default instance."""
    default_spaces().delete_space(key, owner)


def clear_spaces() -> None:
    """Delete every space under the default instance's active root."""
    default_spaces().clear_spaces()


def with_spaces_directory(root: Union[str, Path], action: Callable[[], T]) -> T:
    """Run ``action`` with ``root`` as the default instance's root."""
    return default_spaces().with_spaces_directory(root, action)
