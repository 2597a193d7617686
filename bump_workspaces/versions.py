"""Version parsing, comparison and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import semver

from .errors import ConfigurationError, UnexpectedVersionUpdateError
from .models import VersionUpdate

# Ordered from least to most severe.
SEVERITY: tuple[VersionUpdate, ...] = ("patch", "minor", "major")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-rc.1" → "1.2.3-rc.1"

    Raises:
        ConfigurationError: If the string is not a semantic version, e.g. the
            PEP 440 forms "1.0.0rc1" or "1.0.0.dev0".
    """
    try:
        return semver.Version.parse(version_str, optional_minor_and_patch=True)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid version {version_str!r}: {e}") from e


def has_prerelease(version: semver.Version) -> bool:
    return bool(version.prerelease)


def calc_version_diff(new_version_str: str, old_version_str: str) -> VersionUpdate:
    """Classify the transition from ``old_version_str`` to ``new_version_str``.

    The first matching rule wins:

    1. the new version is a prerelease → "prerelease"
    2. major, minor or patch differ → that field
    3. only a prerelease suffix was dropped (1.0.0-rc.1 → 1.0.0) → the
       innermost nonzero field, checking patch, then minor, then major

    Raises:
        UnexpectedVersionUpdateError: If no rule matches, e.g. the versions
            are identical.
    """
    new = parse_version(new_version_str)
    old = parse_version(old_version_str)
    if has_prerelease(new):
        return "prerelease"
    if new.major != old.major:
        return "major"
    if new.minor != old.minor:
        return "minor"
    if new.patch != old.patch:
        return "patch"
    if has_prerelease(old):
        if new.patch != 0:
            return "patch"
        if new.minor != 0:
            return "minor"
        if new.major != 0:
            return "major"
    raise UnexpectedVersionUpdateError(str(old), str(new))


def increment(version_str: str, kind: VersionUpdate) -> str:
    """Bump a version string and return the canonical result.

    Examples:
        increment("1.2.3", "minor") → "1.3.0"
        increment("1.0.0-rc.1", "prerelease") → "1.0.0-rc.2"
        increment("1.0.0-beta", "prerelease") → "1.0.0-beta.0"
    """
    version = parse_version(version_str)
    if kind == "major":
        return str(version.bump_major())
    if kind == "minor":
        return str(version.bump_minor())
    if kind == "patch":
        return str(version.bump_patch())
    prerelease = version.prerelease
    if prerelease and not prerelease.split(".")[-1].isdigit():
        # No numeric identifier to increment yet: start one.
        return str(version.replace(prerelease=f"{prerelease}.0", build=None))
    return str(version.bump_prerelease())


def max_version(v0: VersionUpdate, v1: VersionUpdate) -> VersionUpdate:
    """Return the more severe of two bump kinds (patch < minor < major).

    "prerelease" never reaches aggregation; it ranks below "patch".
    """
    rank0 = SEVERITY.index(v0) if v0 in SEVERITY else -1
    rank1 = SEVERITY.index(v1) if v1 in SEVERITY else -1
    return v0 if rank0 >= rank1 else v1
