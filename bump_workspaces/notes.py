"""Release note, tag name and pull request body rendering.

Everything here is a pure function of its arguments: writing the notes to
disk and running formatters is up to the caller.

Note layouts::

    single-package        ### 1.2.0 (2024.01.31)
                          <blank>
                          - feat: add x
    workspace             ### 2024.01.31
                          <blank>
                          #### pkg-a 1.2.0 (minor)
                          - feat(pkg-a): add x
                          <blank>
                          #### pkg-b 0.3.1 (patch)
                          - fix(pkg-b): fix y
    individual-package    same as workspace, one module per note
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import NamedTuple

from .commits import get_module
from .models import (
    Commit,
    Diagnostic,
    DiagnosticType,
    ReleaseNoteConfig,
    ReleaseNoteContext,
    VersionUpdate,
    VersionUpdateResult,
    WorkspaceModule,
)

RE_MODULE_HEADING = re.compile(
    r"^#{3,4} (?P<module>\S+) "
    r"(?:\[(?P<linked>[^\]]+)\]\((?P<url>[^)]*)\)|(?P<plain>\S+)) "
    r"\((?P<diff>major|minor|patch|prerelease)\)$"
)
RE_COMPARE_URL = re.compile(r"/compare/(?P<from_tag>.+)\.\.\.(?P<to_tag>[^.].*)$")


def _utc(d: datetime) -> datetime:
    # Naive datetimes are taken to be UTC already.
    return d if d.tzinfo is None else d.astimezone(timezone.utc)


def create_release_title(d: datetime) -> str:
    """Format the release date as ``YYYY.MM.DD`` (UTC)."""
    return _utc(d).strftime("%Y.%m.%d")


def create_release_branch_name(d: datetime) -> str:
    """Name of the branch holding the release commit, e.g.
    ``release-1970-01-01-00-00-00``.
    """
    return "release-" + _utc(d).strftime("%Y-%m-%d-%H-%M-%S")


def single_package_tag(version: str, prefix: str = "v") -> str:
    return f"{prefix}{version}"


def individual_tag(module_name: str, version: str) -> str:
    return f"{module_name}@{version}"


def consolidated_tag(d: datetime) -> str:
    return f"release-{create_release_title(d)}"


def create_release_note(
    updates: VersionUpdateResult | Sequence[VersionUpdateResult],
    context: ReleaseNoteContext,
    config: ReleaseNoteConfig,
) -> str:
    """Render release notes for one or more resolved updates.

    Args:
        updates: The resolved updates. single-package and individual-package
            contexts only render the first one.
        context: Which presentation to use.
        config: Date, GitHub repository and tag settings.
    """
    if isinstance(updates, VersionUpdateResult):
        updates = [updates]
    release_title = create_release_title(config.date)

    if context.type == "single-package":
        return _build_single_package_note(updates[0], release_title, config)
    if context.type == "workspace":
        return _build_workspace_note(updates, context.modules, release_title, config)
    return _build_workspace_note(updates[:1], context.modules, release_title, config)


def _build_single_package_note(
    update: VersionUpdateResult, release_title: str, config: ReleaseNoteConfig
) -> str:
    from_tag = config.previous_tag or single_package_tag(update.from_, config.tag_prefix)
    to_tag = single_package_tag(update.to, config.tag_prefix)
    version_text = format_version_with_link(update.to, config.github_repo, from_tag, to_tag)
    commits = format_commit_list(update.summary.commits, config.github_repo)
    return f"### {version_text} ({release_title})\n\n{commits}"


def _build_workspace_note(
    updates: Iterable[VersionUpdateResult],
    modules: Sequence[WorkspaceModule],
    release_title: str,
    config: ReleaseNoteConfig,
) -> str:
    module_notes: list[str] = []
    for update in updates:
        module = get_module(update.summary.module, modules)
        name = module.name if module else update.summary.module
        from_tag, to_tag = _workspace_tags(name, update, release_title, config)
        version_text = format_version_with_link(
            update.to, config.github_repo, from_tag, to_tag
        )
        commits = format_commit_list(update.summary.commits, config.github_repo)
        module_notes.append(f"#### {name} {version_text} ({update.diff})\n{commits}")
    return f"### {release_title}\n\n" + "\n".join(module_notes)


def _workspace_tags(
    module_name: str,
    update: VersionUpdateResult,
    release_title: str,
    config: ReleaseNoteConfig,
) -> tuple[str, str]:
    if config.individual_tags:
        return (
            individual_tag(module_name, update.from_),
            individual_tag(module_name, update.to),
        )
    return config.previous_tag or "", f"release-{release_title}"


def format_version_with_link(
    version: str,
    github_repo: str | None = None,
    from_tag: str | None = None,
    to_tag: str | None = None,
) -> str:
    """Link the version to a GitHub compare view when everything is known."""
    if github_repo and from_tag and to_tag:
        return f"[{version}](https://github.com/{github_repo}/compare/{from_tag}...{to_tag})"
    return version


def format_commit_list(commits: Iterable[Commit], github_repo: str | None = None) -> str:
    """Render commits as markdown bullets, each ending with a newline."""
    lines: list[str] = []
    for commit in commits:
        link = ""
        if github_repo:
            short_hash = commit.hash[:7]
            link = f" ([{short_hash}](https://github.com/{github_repo}/commit/{commit.hash}))"
        lines.append(f"- {commit.subject}{link}\n")
    return "".join(lines)


class ReleaseHeading(NamedTuple):
    """A module heading read back from rendered notes."""

    module: str
    version: str
    diff: VersionUpdate
    from_tag: str | None
    to_tag: str | None


def parse_release_heading(line: str) -> ReleaseHeading | None:
    """Parse a ``#### <module> <version> (<diff>)`` heading.

    The compare tags are filled in when the version is linked.

    Returns:
        The parsed heading, or None if the line is not a module heading.
    """
    match = RE_MODULE_HEADING.match(line.strip())
    if match is None:
        return None
    from_tag = to_tag = None
    if match["url"]:
        compare = RE_COMPARE_URL.search(match["url"])
        if compare:
            from_tag, to_tag = compare["from_tag"], compare["to_tag"]
    return ReleaseHeading(
        module=match["module"],
        version=match["linked"] or match["plain"],
        diff=match["diff"],
        from_tag=from_tag,
        to_tag=to_tag,
    )


_DIAGNOSTIC_NOTES: tuple[tuple[DiagnosticType, str], ...] = (
    (
        "unknown_commit",
        "The following commits are not recognized. "
        "Please handle them manually if necessary:",
    ),
    (
        "unknown_range_commit",
        "The following commits have unknown scopes. "
        "Please handle them manually if necessary:",
    ),
    (
        "missing_range",
        "Required scopes are missing in the following commits. "
        "Please handle them manually if necessary:",
    ),
    ("skipped_commit", "The following commits are ignored:"),
)


def create_pr_body(
    updates: Sequence[VersionUpdateResult],
    diagnostics: Sequence[Diagnostic],
    github_repo: str,
    release_branch: str,
) -> str:
    """Render the body of the release pull request.

    Lists every update in a table, followed by one section per diagnostic
    kind that has entries so reviewers can handle those commits by hand.
    """
    table = "\n".join(
        "|" + "|".join([u.summary.module, u.from_, u.to, u.diff]) + "|" for u in updates
    )
    parts = [
        "The following updates are detected:\n"
        "\n"
        "| module   | from    | to      | type  |\n"
        "|----------|---------|---------|-------|\n"
        f"{table}",
        "Please ensure:\n"
        "- [ ] Versions in pyproject.toml files are updated correctly\n"
        "- [ ] Release notes are updated correctly",
    ]
    for diagnostic_type, note in _DIAGNOSTIC_NOTES:
        links = [
            f"- [{d.commit.subject}](/{github_repo}/commit/{d.commit.hash})"
            for d in diagnostics
            if d.type == diagnostic_type
        ]
        if links:
            parts.append(note + "\n\n" + "\n".join(links))
    parts.append("---")
    parts.append(
        "To make edits to this PR:\n"
        "\n"
        "```sh\n"
        f"git fetch upstream {release_branch} && "
        f"git checkout -b {release_branch} upstream/{release_branch}\n"
        "```\n"
    )
    return "\n\n".join(parts)
