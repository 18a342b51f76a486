"""Tests for project environment discovery and source location."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from scratchspaces.environment import (
    PROJECT_ENV_VAR,
    DepotSourceLocator,
    ProjectEnvironment,
    active_project_file,
    default_project_file,
)
from scratchspaces.errors import EnvironmentUnavailable, PackageNotInstalled
from scratchspaces.models import PackageSpec

from conftest import APP_UUID, EXAMPLE_TREE_HASH, EXAMPLE_UUID, GHOST_UUID, LOCAL_UUID


class TestProjectEnvironment:
    """Tests for ProjectEnvironment.load."""

    def test_loads_project_identity(self, project_env: Path):
        context = ProjectEnvironment(project_env).load()
        assert context.project_uuid == APP_UUID
        assert context.project_name == "App"
        assert context.project_file == project_env

    def test_loads_manifest_entries(self, project_env: Path):
        manifest = ProjectEnvironment(project_env).load().manifest
        assert set(manifest) == {EXAMPLE_UUID, LOCAL_UUID, GHOST_UUID}
        example = manifest[EXAMPLE_UUID]
        assert example.name == "Example"
        assert example.tree_hash == EXAMPLE_TREE_HASH
        assert example.version == "0.5.3"
        assert example.path is None

    def test_relative_dependency_path_resolved(self, project_env: Path):
        local = ProjectEnvironment(project_env).load().manifest[LOCAL_UUID]
        assert local.path == project_env.parent / "dev" / "Local"

    def test_missing_project_unavailable(self, tmp_path: Path):
        with pytest.raises(EnvironmentUnavailable):
            ProjectEnvironment(tmp_path / "nope" / "Project.toml").load()

    def test_corrupt_project_unavailable(self, tmp_path: Path):
        project = tmp_path / "Project.toml"
        project.write_text("name = [unterminated\n")
        with pytest.raises(EnvironmentUnavailable):
            ProjectEnvironment(project).load()

    def test_project_without_manifest(self, tmp_path: Path):
        project = tmp_path / "Project.toml"
        project.write_text('name = "Bare"\n')
        context = ProjectEnvironment(project).load()
        assert context.project_uuid is None
        assert context.manifest == {}

    def test_reloads_on_every_call(self, project_env: Path):
        """Edits to the environment are visible without a new provider."""
        provider = ProjectEnvironment(project_env)
        assert provider.load().project_name == "App"
        project_env.write_text(f'name = "Renamed"\nuuid = "{APP_UUID}"\n')
        assert provider.load().project_name == "Renamed"

    def test_entries_without_uuid_skipped(self, tmp_path: Path):
        (tmp_path / "Project.toml").write_text('name = "P"\n')
        (tmp_path / "Manifest.toml").write_text('[[deps.NoId]]\nversion = "1.0.0"\n')
        assert ProjectEnvironment(tmp_path / "Project.toml").load().manifest == {}

    def test_wrongly_typed_project_name_unavailable(self, tmp_path: Path):
        project = tmp_path / "Project.toml"
        project.write_text(f'name = 1\nuuid = "{APP_UUID}"\n')
        with pytest.raises(EnvironmentUnavailable, match="Malformed project"):
            ProjectEnvironment(project).load()

    def test_malformed_dependency_entry_skipped(self, tmp_path: Path):
        """One bad manifest entry does not hide the others."""
        (tmp_path / "Project.toml").write_text('name = "P"\n')
        (tmp_path / "Manifest.toml").write_text(
            "[[deps.Broken]]\n"
            f'uuid = "{EXAMPLE_UUID}"\n'
            "path = 5\n\n"
            "[[deps.Local]]\n"
            f'uuid = "{LOCAL_UUID}"\n'
            'path = "dev/Local"\n'
        )
        manifest = ProjectEnvironment(tmp_path / "Project.toml").load().manifest
        assert EXAMPLE_UUID not in manifest
        assert manifest[LOCAL_UUID].path == tmp_path / "dev" / "Local"


class TestDepotSourceLocator:
    """Tests for locating dependency sources."""

    def test_finds_installed_tree(self, depot: Path, project_env: Path):
        spec = PackageSpec(name="Example", uuid=EXAMPLE_UUID, tree_hash=EXAMPLE_TREE_HASH)
        found = DepotSourceLocator(depot).source_path(spec)
        assert found == depot / "packages" / "Example" / EXAMPLE_TREE_HASH

    def test_explicit_path_wins(self, depot: Path, project_env: Path):
        local_dir = project_env.parent / "dev" / "Local"
        spec = PackageSpec(name="Local", uuid=LOCAL_UUID, path=local_dir, tree_hash="ignored")
        assert DepotSourceLocator(depot).source_path(spec) == local_dir

    def test_missing_tree_not_installed(self, depot: Path):
        spec = PackageSpec(name="Ghost", uuid=GHOST_UUID, tree_hash="0" * 40)
        with pytest.raises(PackageNotInstalled, match="Ghost"):
            DepotSourceLocator(depot).source_path(spec)

    def test_missing_path_not_installed(self, depot: Path, tmp_path: Path):
        spec = PackageSpec(name="Gone", uuid=GHOST_UUID, path=tmp_path / "gone")
        with pytest.raises(PackageNotInstalled):
            DepotSourceLocator(depot).source_path(spec)

    def test_no_hash_no_path_not_installed(self, depot: Path):
        spec = PackageSpec(name="Stdlib", uuid=GHOST_UUID)
        with pytest.raises(PackageNotInstalled):
            DepotSourceLocator(depot).source_path(spec)


class TestProjectFiles:
    """Tests for the default and active project file locators."""

    def test_default_project_per_interpreter(self, depot: Path):
        expected = f"py{sys.version_info.major}.{sys.version_info.minor}"
        assert default_project_file(depot) == depot / "environments" / expected / "Project.toml"

    def test_active_falls_back_to_default(self, depot: Path):
        assert active_project_file(depot) == default_project_file(depot)

    def test_env_var_used(self, depot: Path, project_env: Path, monkeypatch):
        monkeypatch.setenv(PROJECT_ENV_VAR, str(project_env))
        assert active_project_file(depot) == project_env

    def test_explicit_beats_env_var(self, depot: Path, project_env: Path, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(PROJECT_ENV_VAR, str(tmp_path / "other" / "Project.toml"))
        assert active_project_file(depot, project_env) == project_env

    def test_directory_means_project_inside(self, depot: Path, project_env: Path):
        assert active_project_file(depot, project_env.parent) == project_env
