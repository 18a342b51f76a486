"""
Project environment discovery.

Attribution needs to know which project file currently depends on an
owner. That knowledge lives outside this package, behind two small
protocols: an EnvironmentProvider that describes the active project
and its manifest, and a SourceLocator that finds a dependency's
sources on disk. The defaults here read a TOML project descriptor
and the Manifest.toml next to it:

    # Project.toml
    name = "MyApp"
    uuid = "7876af07-990d-54b4-ab0e-23690620f79a"

    # Manifest.toml
    [[deps.Example]]
    uuid = "1c4f5e9d-3b2a-4c6d-9e8f-0a1b2c3d4e5f"
    git-tree-sha1 = "46e44e869b4d90b96bd8ed1fdcf32244fddfb6cc"
    version = "0.5.3"
"""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Optional, Protocol, Union
from uuid import UUID

from pydantic import ValidationError

from .errors import EnvironmentUnavailable, PackageNotInstalled
from .models import EnvironmentContext, ManifestEntry, PackageSpec

logger = logging.getLogger("scratchspaces.environment")

PROJECT_FILENAME = "Project.toml"
MANIFEST_FILENAME = "Manifest.toml"
PROJECT_ENV_VAR = "SCRATCHSPACES_PROJECT"


class EnvironmentProvider(Protocol):
    """Anything that can describe the currently active environment."""

    def load(self) -> EnvironmentContext:
        """Return the active environment or raise EnvironmentUnavailable."""
        ...


class SourceLocator(Protocol):
    """Anything that can find a dependency's source directory."""

    def source_path(self, spec: PackageSpec) -> Path:
        """Return the source directory or raise PackageNotInstalled."""
        ...


def default_project_file(depot: Union[str, Path]) -> Path:
    """Project descriptor of the default global environment.

    One environment per interpreter minor version, e.g.
    <depot>/environments/py3.12/Project.toml. The file need not exist.
    """
    version = f"py{sys.version_info.major}.{sys.version_info.minor}"
    return Path(os.path.abspath(Path(depot).expanduser() / "environments" / version / PROJECT_FILENAME))


def active_project_file(depot: Union[str, Path], project: Optional[Path] = None) -> Path:
    """Pick the project descriptor of the active environment.

    Priority: an explicit ``project``, then $SCRATCHSPACES_PROJECT, then
    the default global environment. A directory means the Project.toml
    inside it.
    """
    chosen = project or os.environ.get(PROJECT_ENV_VAR)
    if not chosen:
        return default_project_file(depot)
    path = Path(chosen).expanduser()
    if path.is_dir():
        path = path / PROJECT_FILENAME
    return Path(os.path.abspath(path))


def _read_toml(path: Path) -> dict:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as exc:
        raise EnvironmentUnavailable(f"Cannot read {path}: {exc}") from exc


def _parse_uuid(raw: object, where: Path) -> Optional[UUID]:
    if raw is None:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        logger.debug("Ignoring malformed uuid %r in %s", raw, where)
        return None


class ProjectEnvironment:
    """EnvironmentProvider backed by a Project.toml and its Manifest.toml.

    The files are re-read on every load() so edits to the environment
    (adding a dependency, re-instantiating) are picked up immediately.

    Args:
        project_file: Path to the project descriptor.
    """

    def __init__(self, project_file: Union[str, Path]) -> None:
        self.project_file = Path(project_file)

    def load(self) -> EnvironmentContext:
        """Parse the project and manifest into an EnvironmentContext.

        Raises:
            EnvironmentUnavailable: If the project file is missing, unreadable or
                malformed.
        """
        if not self.project_file.is_file():
            raise EnvironmentUnavailable(f"No active project at {self.project_file}")

        project = _read_toml(self.project_file)
        try:
            context = EnvironmentContext(
                project_uuid=_parse_uuid(project.get("uuid"), self.project_file),
                project_name=project.get("name"),
                project_file=self.project_file,
            )
        except ValidationError as exc:
            raise EnvironmentUnavailable(f"Malformed project {self.project_file}: {exc}") from exc

        manifest_file = self.project_file.parent / MANIFEST_FILENAME
        if manifest_file.is_file():
            context.manifest = self._load_manifest(manifest_file)
        return context

    def _load_manifest(self, manifest_file: Path) -> dict[UUID, ManifestEntry]:
        data = _read_toml(manifest_file)
        deps = data.get("deps", {})
        if not isinstance(deps, dict):
            raise EnvironmentUnavailable(f"Malformed deps table in {manifest_file}")
        entries: dict[UUID, ManifestEntry] = {}
        for name, infos in deps.items():
            if isinstance(infos, dict):
                infos = [infos]
            for info in infos:
                if not isinstance(info, dict):
                    continue
                dep_uuid = _parse_uuid(info.get("uuid"), manifest_file)
                if dep_uuid is None:
                    continue
                try:
                    entries[dep_uuid] = self._manifest_entry(name, dep_uuid, info, manifest_file)
                except (ValidationError, TypeError, ValueError) as exc:
                    logger.debug("Skipping malformed entry %s in %s: %s", name, manifest_file, exc)
        return entries

    @staticmethod
    def _manifest_entry(name: str, dep_uuid: UUID, info: dict, manifest_file: Path) -> ManifestEntry:
        raw_path = info.get("path")
        dep_path = None
        if raw_path:
            dep_path = Path(raw_path)
            if not dep_path.is_absolute():
                dep_path = manifest_file.parent / dep_path
        return ManifestEntry(
            name=name,
            uuid=dep_uuid,
            tree_hash=info.get("git-tree-sha1"),
            path=dep_path,
            version=info.get("version"),
        )


class DepotSourceLocator:
    """SourceLocator that looks for installed sources in a depot.

    A dependency with an explicit path lives there. Anything else is
    expected under <depot>/packages/<name>/<tree-hash>/.

    Args:
        depot: The depot directory.
    """

    def __init__(self, depot: Union[str, Path]) -> None:
        self.depot = Path(depot).expanduser()

    def source_path(self, spec: PackageSpec) -> Path:
        """Return the directory holding ``spec``'s sources.

        Raises:
            PackageNotInstalled: If no such directory exists.
        """
        if spec.path is not None:
            if spec.path.is_dir():
                return spec.path
            raise PackageNotInstalled(f"{spec.name} [{spec.uuid}] not found at {spec.path}")

        if spec.tree_hash:
            candidate = self.depot / "packages" / spec.name / spec.tree_hash
            if candidate.is_dir():
                return candidate
        raise PackageNotInstalled(f"{spec.name} [{spec.uuid}] is not installed in {self.depot}")
