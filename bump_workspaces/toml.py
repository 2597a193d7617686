"""pyproject.toml reading, writing and workspace discovery.

Uses tomlkit to preserve formatting and comments when modifying pyproject.toml
files. This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

import glob
from pathlib import Path

import tomlkit
from tomlkit.exceptions import ParseError

from .errors import ConfigurationError
from .models import WorkspaceModule
from .versions import parse_version

PYPROJECT = "pyproject.toml"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ConfigurationError: If the file is missing or is not valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text())
    except FileNotFoundError as e:
        raise ConfigurationError(f"No {PYPROJECT} found at {path}") from e
    except ParseError as e:
        raise ConfigurationError(f"Invalid {path}: {e}") from e


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str | None = None) -> str | None:
    """Extract [project].name as written, or ``fallback`` if it is missing.

    Names are kept verbatim since they appear in tags and release notes;
    comparisons normalize them separately (see commits.get_module()).
    """
    return doc.get("project", {}).get("name", fallback)


def get_project_version(
    doc: tomlkit.TOMLDocument, fallback: str | None = "0.0.0"
) -> str | None:
    """Extract version from [project].version, defaulting to ``fallback``."""
    return doc.get("project", {}).get("version", fallback)


def check_version(path: Path, version: str) -> str:
    """Return ``version`` if it is a semantic version.

    Raises:
        ConfigurationError: Naming ``path``, if it is not.
    """
    try:
        parse_version(version)
    except ConfigurationError as e:
        raise ConfigurationError(f"{path}: invalid version {version!r}") from e
    return version


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str] | None:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace packages.

    Returns:
        The patterns, or None when the root is not a workspace.

    Raises:
        ConfigurationError: If members is not a list of strings.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    if members is None:
        return None
    if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
        raise ConfigurationError(
            "[tool.uv.workspace] members should be an array of strings."
        )
    return [str(m) for m in members]


def get_workspace_modules(
    root: Path,
    *,
    default_name: str | None = None,
    default_version: str | None = None,
) -> tuple[str, list[WorkspaceModule]]:
    """Discover the modules of the repository at ``root``.

    A root pyproject.toml with [tool.uv.workspace].members is a workspace:
    member globs are expanded relative to root and every matching directory
    with a named pyproject.toml becomes a module. Otherwise the root itself
    is a single package and must have a name and version (the defaults are
    used for whichever is missing).

    Returns:
        Tuple of (root pyproject.toml path, modules).

    Raises:
        ConfigurationError: If the root manifest is missing or invalid, or a
            module version is not a semantic version.
    """
    root_path = root / PYPROJECT
    doc = load_pyproject(root_path)
    member_globs = get_workspace_member_globs(doc)

    if member_globs is None:
        name = get_project_name(doc, default_name)
        version = get_project_version(doc, default_version)
        if not name or not version:
            raise ConfigurationError(
                f"{root_path} must have either:\n"
                "  - [tool.uv.workspace] members for multi-package repos, or\n"
                "  - [project] name and version for single-package repos"
            )
        return str(root_path), [
            WorkspaceModule(
                name=name,
                version=check_version(root_path, version),
                config_path=str(root_path),
            )
        ]

    modules: list[WorkspaceModule] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            pyproject = Path(match) / PYPROJECT
            if not pyproject.exists():
                continue
            member_doc = load_pyproject(pyproject)
            name = get_project_name(member_doc)
            if not name:
                continue
            modules.append(
                WorkspaceModule(
                    name=name,
                    version=check_version(pyproject, get_project_version(member_doc)),
                    config_path=str(pyproject),
                )
            )
    return str(root_path), modules


def get_package_dir(module: WorkspaceModule, root: Path) -> Path:
    """Return the directory holding a module's pyproject.toml.

    Relative config paths are resolved against ``root``.
    """
    package_dir = Path(module.config_path).parent
    if package_dir.is_absolute():
        return package_dir
    return root / package_dir
