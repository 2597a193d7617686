"""Manifest rewriting utilities.

Provides functions for parsing PEP 508 dependency strings and rewriting
pyproject.toml files: setting a package's version, and moving exact pins on
sibling workspace packages along when those packages are bumped.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from .toml import load_pyproject, save_pyproject

# Map of canonical package name → (old version, new version).
PinUpdates = Mapping[str, tuple[str, str]]


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def exact_pin(dep_str: str) -> str | None:
    """Return the version of an ``==`` pin, or None for any other specifier.

    Examples:
        exact_pin("pkg==1.2.0") → "1.2.0"
        exact_pin("pkg>=1.2.0") → None
    """
    specs = list(Requirement(dep_str).specifier)
    if len(specs) == 1 and specs[0].operator == "==":
        return specs[0].version
    return None


def pin_dep(dep_str: str, version: str) -> str:
    """Pin a PEP 508 dependency to an exact version.

    Preserves extras and environment markers.

    Examples:
        pin_dep("requests==2.0", "2.31.0") → "requests==2.31.0"
        pin_dep("pkg[b,a]==1.0", "1.5.0") → "pkg[a,b]==1.5.0"
    """
    req = Requirement(dep_str)
    # Sort extras alphabetically for consistent output
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}=={version}{marker}"


def rewrite_pyproject(
    pyproject_path: Path,
    new_version: str | None,
    pin_updates: PinUpdates,
) -> bool:
    """Update a package's version and move exact pins on bumped siblings.

    A dependency is re-pinned only when it is pinned with ``==`` to the old
    version of a bumped package; ranges are left alone. Pins are updated in
    [project].dependencies, [project].optional-dependencies.* and
    [dependency-groups].*.

    Uses tomlkit to preserve formatting and comments.

    Args:
        pyproject_path: Path to the pyproject.toml file.
        new_version: Version to set, or None to leave [project].version as is.
        pin_updates: Map of canonical package name → (old, new) version.

    Returns:
        True if the file was modified.
    """
    doc = load_pyproject(pyproject_path)
    # Cast needed because tomlkit types are complex unions
    project = cast(dict[str, Any], doc.get("project", {}))
    changed = False
    if new_version is not None and project.get("version") != new_version:
        project["version"] = new_version
        changed = True

    if pin_updates:
        deps = project.get("dependencies")
        if isinstance(deps, list):
            changed |= _repin_dep_list(deps, pin_updates)

        opt_deps = project.get("optional-dependencies")
        if isinstance(opt_deps, dict):
            for group in opt_deps.values():
                if isinstance(group, list):
                    changed |= _repin_dep_list(group, pin_updates)

        dep_groups = doc.get("dependency-groups")
        if isinstance(dep_groups, dict):
            for group in dep_groups.values():
                if isinstance(group, list):
                    changed |= _repin_dep_list(group, pin_updates)

    if changed:
        save_pyproject(pyproject_path, doc)
    return changed


def _repin_dep_list(deps: list, pin_updates: PinUpdates) -> bool:
    """Re-pin matching dependencies in a list, modifying in place."""
    changed = False
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            # Include-group tables in [dependency-groups]
            continue
        name = dep_canonical_name(str(dep_str))
        if name not in pin_updates:
            continue
        old, new = pin_updates[name]
        if exact_pin(str(dep_str)) == old:
            deps[i] = pin_dep(str(dep_str), new)
            changed = True
    return changed
