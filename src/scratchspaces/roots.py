"""
Root resolution for scratch spaces.

Every space lives under one root: <depot>/scratchspaces/ by default,
or a caller-chosen directory while an override is installed. The
override is total. While it is active the depot is never consulted.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar, Union

logger = logging.getLogger("scratchspaces.roots")

SPACES_DIRNAME = "scratchspaces"

T = TypeVar("T")


class RootResolver:
    """Maps path segments onto the active scratch space root.

    Args:
        depot: Depot directory whose scratchspaces/ folder is the default root.
    """

    def __init__(self, depot: Union[str, Path]) -> None:
        self.depot = Path(os.path.abspath(Path(depot).expanduser()))
        self._override: Optional[Path] = None

    @property
    def override(self) -> Optional[Path]:
        """The installed override root, or None."""
        return self._override

    def resolve(self, *segments: str) -> Path:
        """Return a path inside the active root.

        Pure path construction: nothing is created or checked on disk.

        Args:
            *segments: Path components appended below the root.

        Returns:
            Path: Absolute path under the override if one is installed,
            else under <depot>/scratchspaces/.
        """
        if self._override is None:
            return Path(os.path.abspath(os.path.join(self.depot, SPACES_DIRNAME, *segments)))
        return Path(os.path.abspath(os.path.join(self._override, *segments)))

    @contextmanager
    def override_root(self, root: Union[str, Path]) -> Iterator[Path]:
        """Redirect all resolution to ``root`` for the body of a with-block.

        Nesting replaces the outer override for the inner block; the
        previous value comes back on exit, including when the body
        raises. Not safe to use from several threads at once.

        Args:
            root: Directory to use as the scratch space root.

        Yields:
            Path: The absolute override root.
        """
        previous = self._override
        self._override = Path(os.path.abspath(Path(root).expanduser()))
        logger.debug("Scratch space root overridden to %s", self._override)
        try:
            yield self._override
        finally:
            self._override = previous

    def run_with_root(self, root: Union[str, Path], action: Callable[[], T]) -> T:
        """Call ``action`` with ``root`` installed as the override.

        Args:
            root: Directory to use as the scratch space root.
            action: Zero-argument callable to run.

        Returns:
            Whatever ``action`` returns.
        """
        with self.override_root(root):
            return action()
