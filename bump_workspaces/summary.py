"""Aggregation of per-commit bumps into one summary per module."""

from __future__ import annotations

from collections.abc import Iterable

from .commits import TAG_PRIORITY
from .models import CommitWithTag, VersionBump, VersionBumpSummary
from .versions import max_version


def tag_priority(tag: str) -> int:
    """Sort key for a commit tag; unknown tags sort after every known one."""
    try:
        return TAG_PRIORITY.index(tag)
    except ValueError:
        return len(TAG_PRIORITY)


def summarize_version_bumps_by_module(
    version_bumps: Iterable[VersionBump],
) -> list[VersionBumpSummary]:
    """Merge bumps into one summary per module.

    Each summary's version is the most severe bump for that module. Its
    commits are ordered by tag priority; commits with the same priority keep
    their input order. Summaries are returned sorted by module name.

    Bumps are grouped by module only. A commit that targets several modules
    shows up once in each of their summaries.
    """
    grouped: dict[str, list[VersionBump]] = {}
    for version_bump in version_bumps:
        grouped.setdefault(version_bump.module, []).append(version_bump)

    summaries: list[VersionBumpSummary] = []
    for module in sorted(grouped):
        bumps = grouped[module]
        version = bumps[0].version
        for version_bump in bumps[1:]:
            version = max_version(version, version_bump.version)
        commits = [
            CommitWithTag(**b.commit.model_dump(), tag=b.tag)
            for b in sorted(bumps, key=lambda b: tag_priority(b.tag))
        ]
        summaries.append(
            VersionBumpSummary(module=module, version=version, commits=commits)
        )
    return summaries
