"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from bump_workspaces.models import WorkspaceModule


def write_workspace(root: Path, packages: dict[str, str]) -> None:
    """Write a uv workspace with one package per (name, version) entry."""
    (root / "pyproject.toml").write_text(
        '[project]\nname = "root"\nversion = "0.0.0"\n'
        'dependencies = ["pkg-a==1.0.0"]\n\n'
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
    )
    for name, version in packages.items():
        package_dir = root / "packages" / name
        package_dir.mkdir(parents=True)
        (package_dir / "pyproject.toml").write_text(
            f'[project]\nname = "{name}"\nversion = "{version}"\n'
        )


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """A two-package workspace: pkg-a 1.0.0 and pkg-b 0.2.0."""
    write_workspace(tmp_path, {"pkg-a": "1.0.0", "pkg-b": "0.2.0"})
    return tmp_path


@pytest.fixture
def single_package_root(tmp_path: Path) -> Path:
    """A repository whose root pyproject.toml is the only package."""
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "solo"\nversion = "1.2.3"\n'
    )
    return tmp_path


@pytest.fixture
def modules() -> list[WorkspaceModule]:
    """Workspace modules without files behind them."""
    return [
        WorkspaceModule(name="pkg-a", version="1.0.0", config_path="packages/pkg-a/pyproject.toml"),
        WorkspaceModule(name="pkg-b", version="0.2.0", config_path="packages/pkg-b/pyproject.toml"),
    ]


@pytest.fixture
def single_module() -> list[WorkspaceModule]:
    return [WorkspaceModule(name="solo", version="1.2.3", config_path="pyproject.toml")]


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep==1.0.0",  # pinned sibling
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal[extra]==0.5.0; python_version >= '3.10'"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1", {include-group = "dev"}]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)
