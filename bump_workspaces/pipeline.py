"""Bump pipeline: discover → read commits → classify → bump → publish.

This module orchestrates a bump-workspaces run:
1. Discover the modules of the repository (now and at the start ref)
2. Read the commits between the start ref and the base branch
3. Classify them into per-module bumps and diagnostics
4. Resolve and apply the version updates
5. Render release notes, commit on a release branch, tag, push
6. Open a draft pull request against the base branch

Steps 5 and 6 are skipped or reduced by the dry run settings.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from packaging.utils import canonicalize_name

from .bump import apply_version_bump
from .commits import CommitParser, classify_commits, get_module, parse_commit_message
from .deps import rewrite_pyproject
from .errors import BumpWorkspacesError, ConfigurationError
from .models import (
    BumpWorkspaceOptions,
    Commit,
    Diagnostic,
    IndividualPackageContext,
    ReleaseNoteConfig,
    SinglePackageContext,
    VersionUpdateResult,
    WorkspaceContext,
    WorkspaceModule,
)
from .notes import (
    consolidated_tag,
    create_pr_body,
    create_release_branch_name,
    create_release_note,
    create_release_title,
    individual_tag,
    single_package_tag,
)
from .shell import fatal, gh, git, step
from .summary import summarize_version_bumps_by_module
from .toml import (
    check_version,
    get_package_dir,
    get_project_name,
    get_project_version,
    get_workspace_modules,
    load_pyproject,
)

# Unlikely to appear in a commit message.
SEPARATOR = "#%$" * 35

RE_TAG_VERSION = re.compile(r"v?(\d+\.\d+\.\d+)")


def get_current_git_branch() -> str:
    """Return the checked out branch name.

    Falls back to the exact tag for a detached HEAD, then to
    ``detached-<short sha>``, and to ``unknown`` outside a repository.
    """
    branch = git("branch", "--show-current", check=False)
    if branch:
        return branch
    branch = git("rev-parse", "--abbrev-ref", "HEAD", check=False)
    if not branch:
        return "unknown"
    if branch != "HEAD":
        return branch
    tag = git("describe", "--exact-match", "HEAD", check=False)
    if tag:
        return tag
    sha = git("rev-parse", "--short", "HEAD", check=False)
    return f"detached-{sha}" if sha else "unknown"


@contextmanager
def git_context(*, quiet: bool = False) -> Iterator[str]:
    """Restore the current branch when the block exits.

    Yields:
        The branch that was checked out on entry.
    """
    branch = get_current_git_branch()
    try:
        yield branch
    finally:
        current = get_current_git_branch()
        if branch != "unknown" and current != branch:
            if not quiet:
                print(f"  Restoring git branch: {branch} (was on: {current})")
            git("checkout", branch, check=False)


def find_start_tag(
    modules: Sequence[WorkspaceModule],
    *,
    individual_tags: bool,
    single_package: bool,
    tag_prefix: str = "v",
    quiet: bool = False,
) -> str:
    """Pick the ref to read commits from when none is given.

    - per-package tags: the most recently dated ``<name>@*`` tag across
      all modules
    - single package: the latest ``<tag_prefix>*`` tag
    - otherwise (or if nothing matched): the latest tag of any kind, then the
      root commit, then ``""`` for an empty history
    """
    if individual_tags and not single_package:
        found: list[tuple[datetime, str]] = []
        for module in modules:
            tag = git(
                "describe", "--tags", "--abbrev=0", f"--match={module.name}@*", check=False
            )
            if not tag:
                continue
            date = git("log", "-1", "--format=%ai", tag)
            found.append((datetime.strptime(date, "%Y-%m-%d %H:%M:%S %z"), tag))
            if not quiet:
                print(f"  Found {module.name}: {tag}")
        if found:
            return max(found)[1]
    elif single_package:
        tag = git("describe", "--tags", "--abbrev=0", f"--match={tag_prefix}*", check=False)
        if tag:
            return tag

    tag = git("describe", "--tags", "--abbrev=0", check=False)
    if tag:
        return tag
    if not quiet:
        print("  No tags found, analyzing all history")
    roots = git("rev-list", "--max-parents=0", "HEAD", check=False)
    return roots.splitlines()[0] if roots else ""


def find_previous_consolidated_tag() -> str | None:
    """Find the newest ``release-*`` tag, or None if there is none."""
    tags = git("tag", "-l", "release-*", "--sort=-version:refname", check=False)
    return tags.splitlines()[0] if tags else None


def parse_git_log(text: str) -> list[Commit]:
    """Parse ``git log --pretty=format:<SEPARATOR>%H%B`` output.

    The first 40 characters of each entry are the hash; the rest is split
    into subject and body at the first newline.
    """
    commits: list[Commit] = []
    # The output starts with a separator, so the first item is always empty.
    for entry in text.split(SEPARATOR)[1:]:
        hash_, message = entry[:40], entry[40:]
        subject, _, body = message.partition("\n")
        commits.append(Commit(hash=hash_, subject=subject.strip(), body=body.strip()))
    return commits


def get_commits(start: str, base: str) -> list[Commit]:
    """Read the commits reachable from ``base`` but not from ``start``."""
    rev_range = f"{start}..{base}" if start else base
    text = git("--no-pager", "log", f"--pretty=format:{SEPARATOR}%H%B", rev_range)
    return parse_git_log(text)


def get_historical_modules(
    start: str,
    root: Path,
    modules: Sequence[WorkspaceModule],
    root_config_path: str,
    *,
    single_package: bool,
    quiet: bool = False,
) -> list[WorkspaceModule]:
    """Discover the modules as they were at ``start``.

    Checks out ``start`` and returns to the previous ref afterwards. A single
    package whose historical manifest is unusable falls back to the version
    in the latest tag, or 0.0.0.
    """
    if not start:
        if single_package:
            return [modules[0].model_copy(update={"version": "0.0.0"})]
        return []

    git("checkout", start)
    try:
        if not single_package:
            return get_workspace_modules(root)[1]
        try:
            doc = load_pyproject(Path(root_config_path))
        except ConfigurationError:
            if not quiet:
                print(f"  Could not read historical config at {start}, using fallback")
            return [modules[0].model_copy(update={"version": "0.0.0"})]
        name = get_project_name(doc)
        version = get_project_version(doc, None)
        if name and version:
            return [
                WorkspaceModule(
                    name=name,
                    version=check_version(Path(root_config_path), version),
                    config_path=root_config_path,
                )
            ]
        match = RE_TAG_VERSION.search(git("describe", "--tags", "--abbrev=0", check=False))
        version = match.group(1) if match else "0.0.0"
        return [modules[0].model_copy(update={"version": version})]
    finally:
        git("checkout", "-")


def update_internal_pins(
    updates: Sequence[VersionUpdateResult], modules: Sequence[WorkspaceModule]
) -> None:
    """Move ``==`` pins on bumped workspace siblings to their new versions."""
    pin_updates: dict[str, tuple[str, str]] = {}
    for update in updates:
        module = get_module(update.summary.module, modules)
        if module is not None and update.from_ != update.to:
            pin_updates[canonicalize_name(module.name)] = (update.from_, update.to)
    if not pin_updates:
        return
    for module in modules:
        if rewrite_pyproject(Path(module.config_path), None, pin_updates):
            print(f"  Updated internal pins in {module.config_path}")


def bump_workspaces(
    options: BumpWorkspaceOptions,
    parse: CommitParser = parse_commit_message,
) -> list[VersionUpdateResult]:
    """Run the whole bump flow.

    Args:
        options: Run settings, usually built by the CLI.
        parse: Commit message parser, see commits.parse_commit_message().

    Returns:
        The resolved version updates, in module name order.
    """
    with git_context(quiet=options.quiet) as current_branch:
        now = datetime.now(timezone.utc)
        base = options.base or current_branch
        if not base or base == "unknown":
            fatal("The current branch is not found.")

        step("Discovering workspace modules")
        root = Path(options.root)
        root_config_path, modules = get_workspace_modules(root)
        single_package = len(modules) == 1 and modules[0].config_path == root_config_path
        if single_package:
            print(f"  Processing single package: {modules[0].name}")
        else:
            print(f"  Processing workspace with {len(modules)} packages")
            for module in modules:
                print(f"  {module.name} {module.version} ({module.config_path})")

        start = options.start
        if start is None:
            start = find_start_tag(
                modules,
                individual_tags=bool(options.individual_tags),
                single_package=single_package,
                tag_prefix=options.tag_prefix,
                quiet=options.quiet,
            )
        old_modules = get_historical_modules(
            start,
            root,
            modules,
            root_config_path,
            single_package=single_package,
            quiet=options.quiet,
        )
        # Make sure the base branch exists locally.
        git("checkout", base)
        git("checkout", "-")

        step("Reading commits")
        commits = get_commits(start, base)
        print(f"  Found {len(commits)} commits between {start or '<root>'} and {base}.")
        version_bumps, diagnostics = classify_commits(commits, modules, parse)

        summaries = summarize_version_bumps_by_module(version_bumps)
        if not summaries:
            print("  No version bumps.")
            return []

        step("Updating the versions")
        import_map_path = options.import_map or root_config_path
        if options.import_map:
            print(f"  Using the import map: {import_map_path}")
        import_map_text = Path(import_map_path).read_text()
        updates: list[VersionUpdateResult] = []
        for summary in summaries:
            module = _find_module(summary.module, modules)
            import_map_text, update = apply_version_bump(
                summary,
                module,
                get_module(summary.module, old_modules),
                import_map_text,
                import_map_path=import_map_path,
                dry_run=options.dry_run is True,
            )
            updates.append(update)
        if options.dry_run is not True and not single_package:
            update_internal_pins(updates, modules)

        for update in updates:
            print(
                f"  {update.summary.module}: {update.from_} → {update.to} "
                f"({update.diff}, {update.path})"
            )
        print(f"\n  Found {len(diagnostics)} diagnostics:")
        for diagnostic in diagnostics:
            print(f"    {diagnostic.type} {diagnostic.commit.subject}")

        create_pull_request(
            updates=updates,
            modules=modules,
            diagnostics=diagnostics,
            now=now,
            options=options,
            base=base,
            import_map_path=import_map_path,
            import_map_text=import_map_text,
            single_package=single_package,
        )
        print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")
        return updates


def _prepend(path: Path, note: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text() if path.exists() else ""
    path.write_text(note + "\n" + existing)


def _release_tags(
    updates: Sequence[VersionUpdateResult],
    modules: Sequence[WorkspaceModule],
    now: datetime,
    options: BumpWorkspaceOptions,
    single_package: bool,
) -> list[str]:
    if single_package:
        return [single_package_tag(u.to, options.tag_prefix) for u in updates]
    if options.individual_tags:
        tags = []
        for update in updates:
            module = get_module(update.summary.module, modules)
            name = module.name if module else update.summary.module
            tags.append(individual_tag(name, update.to))
        return tags
    return [consolidated_tag(now)]


def _find_module(name: str, modules: Sequence[WorkspaceModule]) -> WorkspaceModule:
    module = get_module(name, modules)
    if module is None:
        raise BumpWorkspacesError(f"Unknown module: {name}.")
    return module


def _require(value: str | None, env_var: str) -> str:
    value = value or os.environ.get(env_var)
    if not value:
        fatal(f"{env_var} is not set.")
    return value


def create_pull_request(
    *,
    updates: Sequence[VersionUpdateResult],
    modules: Sequence[WorkspaceModule],
    diagnostics: Sequence[Diagnostic],
    now: datetime,
    options: BumpWorkspaceOptions,
    base: str,
    import_map_path: str,
    import_map_text: str,
    single_package: bool,
) -> None:
    """Publish the updates.

    Renders one note for a single package, one note per module with
    individual release notes, or one workspace note otherwise. Then:

    - ``dry_run=True``: print the notes and tags, write nothing
    - ``dry_run="git"``: write the import map and notes, skip git and GitHub
    - ``dry_run=False``: also commit on a release branch, tag, push, and open
      a draft pull request against ``base``
    """
    step("Publishing")
    root = Path(options.root)
    release_note_path = options.release_note_path or "Releases.md"
    github_repo = options.github_repo or os.environ.get("GITHUB_REPOSITORY")

    previous_tag = None
    if not options.individual_tags and not single_package:
        previous_tag = find_previous_consolidated_tag()
    config = ReleaseNoteConfig(
        date=now,
        github_repo=github_repo,
        individual_tags=bool(options.individual_tags),
        previous_tag=previous_tag,
        tag_prefix=options.tag_prefix,
    )

    notes: list[tuple[Path, str]] = []
    if single_package:
        notes.append(
            (
                root / release_note_path,
                create_release_note(updates[0], SinglePackageContext(), config),
            )
        )
    elif options.individual_release_notes:
        context = IndividualPackageContext(modules=list(modules))
        for update in updates:
            module = _find_module(update.summary.module, modules)
            notes.append(
                (
                    get_package_dir(module, root) / release_note_path,
                    create_release_note(update, context, config),
                )
            )
    else:
        context = WorkspaceContext(modules=list(modules))
        notes.append((root / release_note_path, create_release_note(updates, context, config)))

    tags = _release_tags(updates, modules, now, options, single_package)

    if options.dry_run is True:
        for path, note in notes:
            print(f"\n  Release note ({path}):\n")
            print(note)
        if options.create_tags:
            print("  Tags that would be created:")
            for tag in tags:
                print(f"    {tag}")
        print("  Skip making a commit.")
        print("  Skip making a pull request.")
        return

    Path(import_map_path).write_text(import_map_text)
    for path, note in notes:
        _prepend(path, note)
        print(f"  Wrote release note to {path}")

    if options.dry_run == "git":
        print("  Skip git and GitHub operations.")
        return

    git_user_name = _require(options.git_user_name, "GIT_USER_NAME")
    git_user_email = _require(options.git_user_email, "GIT_USER_EMAIL")
    github_token = _require(options.github_token, "GITHUB_TOKEN")
    github_repo = _require(github_repo, "GITHUB_REPOSITORY")

    release_branch = create_release_branch_name(now)
    print(f"  Creating a git commit in the new branch {release_branch}.")
    git("checkout", "-b", release_branch)
    git("add", ".")
    git(
        "-c",
        f"user.name={git_user_name}",
        "-c",
        f"user.email={git_user_email}",
        "commit",
        "-m",
        "chore: update versions",
    )

    if options.create_tags:
        for tag in tags:
            if git("rev-parse", "--verify", "--quiet", f"refs/tags/{tag}", check=False):
                print(f"  Tag {tag} already exists, skipping")
                continue
            git("tag", tag)
            print(f"  Created tag: {tag}")

    print(f"  Pushing the new branch {release_branch}.")
    if options.create_tags and options.push_tags:
        git("push", "origin", release_branch, "--tags")
    else:
        git("push", "origin", release_branch)
        if options.create_tags:
            print("  Tags created locally (use --push-tags to push them)")

    print("  Creating a pull request.")
    url = gh(
        "pr",
        "create",
        "--repo",
        github_repo,
        "--base",
        base,
        "--head",
        release_branch,
        "--draft",
        "--title",
        f"chore: release {create_release_title(now)}",
        "--body",
        create_pr_body(updates, diagnostics, github_repo, release_branch),
        token=github_token,
    )
    print(f"  New pull request: {url}")
