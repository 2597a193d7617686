"""Conventional commit classification.

Turns commit subjects such as ``feat(pkg-a): add x`` into per-module bump
requests. Commits that cannot be turned into a bump produce a diagnostic
value instead; one bad commit never stops the others from being classified.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence

from packaging.utils import canonicalize_name

from .models import (
    Commit,
    Diagnostic,
    MissingRange,
    SkippedCommit,
    UnknownCommit,
    UnknownRangeCommit,
    VersionBump,
    VersionBumpKind,
    WorkspaceModule,
)

RE_DEFAULT_PATTERN = re.compile(r"^([^:()!]+)(?:\((.+)\))?(!)?: (.*)$")
RE_UNSTABLE_SCOPE = re.compile(r"^(unstable/(.+)|(.+)/unstable)$")
RE_SCOPE_SEPARATOR = re.compile(r"\s*,\s*")

# Commits created by the release process itself.
RE_VERSION_COMMIT = re.compile(r"^v?\d+\.\d+\.\d+")
RE_RELEASE_COMMIT = re.compile(r"^Release \d+\.\d+\.\d+")

# Declaration order doubles as the changelog ordering (see TAG_PRIORITY).
TAG_TO_VERSION: dict[str, VersionBumpKind] = {
    "BREAKING": "major",
    "feat": "minor",
    "deprecation": "patch",
    "fix": "patch",
    "perf": "patch",
    "docs": "patch",
    "style": "patch",
    "refactor": "patch",
    "test": "patch",
    "chore": "patch",
}
POST_MODULE_TO_VERSION: dict[str, VersionBumpKind] = {"!": "major"}
TAG_PRIORITY: tuple[str, ...] = tuple(TAG_TO_VERSION)

DEFAULT_RANGE_REQUIRED: tuple[str, ...] = (
    "BREAKING",
    "feat",
    "fix",
    "perf",
    "deprecation",
)

CommitParser = Callable[[Commit, Sequence[WorkspaceModule]], "list[VersionBump] | Diagnostic"]


def parse_commit_message(
    commit: Commit, workspace_modules: Sequence[WorkspaceModule]
) -> list[VersionBump] | Diagnostic:
    """Classify one commit subject.

    Scope handling:
    - ``*`` targets every module.
    - ``a, b`` targets each listed module. Names are not validated here;
      see check_module_name().
    - no scope targets the only module of a single-package repository. In a
      workspace it yields MissingRange for release-relevant tags and
      SkippedCommit for the rest.
    - ``unstable/x`` and ``x/unstable`` target ``x`` and are always patch.

    Returns:
        One VersionBump per targeted module, or a diagnostic.
    """
    match = RE_DEFAULT_PATTERN.match(commit.subject)
    if match is None:
        return UnknownCommit(
            commit=commit,
            reason="The commit message does not match the default pattern.",
        )
    tag, scope, post_module, _description = match.groups()

    if scope == "*":
        modules = [m.name for m in workspace_modules]
    elif scope:
        modules = RE_SCOPE_SEPARATOR.split(scope)
    else:
        modules = []

    if not modules:
        if len(workspace_modules) == 1:
            modules = [workspace_modules[0].name]
        elif tag in DEFAULT_RANGE_REQUIRED:
            return MissingRange(
                commit=commit,
                reason="The commit message does not specify a module.",
            )
        else:
            return SkippedCommit(
                commit=commit,
                reason="The commit message does not specify a module.",
            )

    if post_module in POST_MODULE_TO_VERSION:
        version = POST_MODULE_TO_VERSION[post_module]
    else:
        version = TAG_TO_VERSION.get(tag)
    if version is None:
        return UnknownCommit(commit=commit, reason=f"Unknown commit tag: {tag}.")

    bumps: list[VersionBump] = []
    for module in modules:
        unstable = RE_UNSTABLE_SCOPE.match(module)
        if unstable:
            bumps.append(
                VersionBump(
                    module=unstable.group(2) or unstable.group(3),
                    tag=tag,
                    version="patch",
                    commit=commit,
                )
            )
        else:
            bumps.append(VersionBump(module=module, tag=tag, version=version, commit=commit))
    return bumps


def get_module(
    module: str, modules: Iterable[WorkspaceModule]
) -> WorkspaceModule | None:
    """Look up a module by the name used in a commit scope.

    A scope matches a module whose name equals it, or ends with ``/<scope>``
    so that short scopes resolve to namespaced names. Names are compared
    after PEP 503 normalization. When several modules match, the first one
    wins.
    """
    wanted = canonicalize_name(module)
    for m in modules:
        name = canonicalize_name(m.name)
        if name == wanted or name.endswith(f"/{wanted}"):
            return m
    return None


def check_module_name(
    version_bump: VersionBump, modules: Iterable[WorkspaceModule]
) -> UnknownRangeCommit | None:
    """Return a diagnostic if the bump targets a module that does not exist."""
    if get_module(version_bump.module, modules) is not None:
        return None
    return UnknownRangeCommit(
        commit=version_bump.commit,
        reason=f"Unknown module: {version_bump.module}.",
    )


def is_release_commit(commit: Commit) -> bool:
    """True for commits made by a previous release (``1.2.3``, ``Release 1.2.3``)."""
    return bool(
        RE_VERSION_COMMIT.match(commit.subject)
        or RE_RELEASE_COMMIT.match(commit.subject)
    )


def classify_commits(
    commits: Iterable[Commit],
    modules: Sequence[WorkspaceModule],
    parse: CommitParser = parse_commit_message,
) -> tuple[list[VersionBump], list[Diagnostic]]:
    """Classify a sequence of commits.

    Release commits are ignored. Every bump is checked against the known
    modules; bumps for unknown modules become UnknownRangeCommit diagnostics.
    Valid bumps carry the matched module's name, so ``feat(pkg_a)`` and
    ``fix(pkg-a)`` both end up under ``pkg-a``.

    Returns:
        Tuple of (valid bumps in commit order, diagnostics in commit order).
    """
    version_bumps: list[VersionBump] = []
    diagnostics: list[Diagnostic] = []
    for commit in commits:
        if is_release_commit(commit):
            continue
        parsed = parse(commit, modules)
        if not isinstance(parsed, list):
            diagnostics.append(parsed)
            continue
        for version_bump in parsed:
            diagnostic = check_module_name(version_bump, modules)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
                continue
            module = get_module(version_bump.module, modules)
            if module is not None:
                version_bumps.append(version_bump.model_copy(update={"module": module.name}))
    return version_bumps, diagnostics
