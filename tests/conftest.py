"""Shared test fixtures for scratchspaces."""

from __future__ import annotations

from pathlib import Path
from uuid import UUID

import pytest

from scratchspaces.models import SpacesConfig
from scratchspaces.spaces import ScratchSpaces, set_default_spaces

APP_UUID = UUID("7876af07-990d-54b4-ab0e-23690620f79a")
EXAMPLE_UUID = UUID("1c4f5e9d-3b2a-4c6d-9e8f-0a1b2c3d4e5f")
LOCAL_UUID = UUID("a5e0c1d2-6b7f-4e8a-9c0d-1e2f3a4b5c6d")
GHOST_UUID = UUID("0f9e8d7c-6b5a-4f3e-8d2c-1b0a9f8e7d6c")
STRANGER_UUID = UUID("deadbeef-0000-4000-8000-000000000001")

EXAMPLE_TREE_HASH = "46e44e869b4d90b96bd8ed1fdcf32244fddfb6cc"

DAY = 24 * 60 * 60


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = 1_790_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def depot(tmp_path: Path) -> Path:
    """Provide an empty depot directory."""
    depot_dir = tmp_path / "depot"
    depot_dir.mkdir()
    return depot_dir


@pytest.fixture
def project_env(tmp_path: Path, depot: Path) -> Path:
    """Provide an active project environment and return its Project.toml.

    The manifest lists three dependencies:
    - Example: installed in the depot by tree hash
    - Local: developed from a relative path next to the project
    - Ghost: listed but never installed
    """
    env = tmp_path / "env"
    env.mkdir()
    project_file = env / "Project.toml"
    project_file.write_text(f'name = "App"\nuuid = "{APP_UUID}"\n')

    (env / "Manifest.toml").write_text(
        'manifest_format = "2.0"\n\n'
        "[[deps.Example]]\n"
        f'uuid = "{EXAMPLE_UUID}"\n'
        f'git-tree-sha1 = "{EXAMPLE_TREE_HASH}"\n'
        'version = "0.5.3"\n\n'
        "[[deps.Local]]\n"
        f'uuid = "{LOCAL_UUID}"\n'
        'path = "dev/Local"\n\n'
        "[[deps.Ghost]]\n"
        f'uuid = "{GHOST_UUID}"\n'
        'git-tree-sha1 = "0000000000000000000000000000000000000000"\n'
    )

    example_src = depot / "packages" / "Example" / EXAMPLE_TREE_HASH
    example_src.mkdir(parents=True)
    (example_src / "Project.toml").write_text(f'name = "Example"\nuuid = "{EXAMPLE_UUID}"\n')

    local_src = env / "dev" / "Local"
    local_src.mkdir(parents=True)
    (local_src / "Project.toml").write_text(f'name = "Local"\nuuid = "{LOCAL_UUID}"\n')

    return project_file


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock for throttling tests."""
    return FakeClock()


@pytest.fixture
def spaces(depot: Path, project_env: Path, clock: FakeClock) -> ScratchSpaces:
    """ScratchSpaces bound to the temporary depot and project environment."""
    return ScratchSpaces(config=SpacesConfig(depot=depot, project=project_env), clock=clock)


@pytest.fixture(autouse=True)
def _reset_default_spaces(monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the real default depot and active project."""
    monkeypatch.delenv("SCRATCHSPACES_PROJECT", raising=False)
    set_default_spaces(None)
    yield
    set_default_spaces(None)
