"""Data models for bump-workspaces.

These Pydantic models represent the records passed between the commit
classifier, the bump aggregator, the version resolver and the release note
renderer. None of them perform I/O.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

VersionBumpKind = Literal["major", "minor", "patch"]
VersionUpdate = Literal["major", "minor", "patch", "prerelease"]


class Commit(BaseModel):
    """A single commit read from version control.

    Attributes:
        hash: Full 40-character commit SHA (may be empty in tests).
        subject: First line of the commit message.
        body: Remainder of the commit message, stripped.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    subject: str
    body: str = ""


class CommitWithTag(Commit):
    """A commit annotated with the conventional-commit tag it was filed under."""

    tag: str


class WorkspaceModule(BaseModel):
    """A publishable package in the repository.

    Attributes:
        name: Package name from [project].name.
        version: Current version string from [project].version.
        config_path: Path to the package's pyproject.toml. For a single-package
            repository this is the root manifest.
    """

    name: str = Field(min_length=1)
    version: str
    config_path: str


class VersionBump(BaseModel):
    """A request to bump one module, derived from one commit."""

    module: str
    tag: str
    version: VersionBumpKind
    commit: Commit


class _DiagnosticBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    commit: Commit
    reason: str


class UnknownCommit(_DiagnosticBase):
    """The subject is not a conventional commit, or its tag is unknown."""

    type: Literal["unknown_commit"] = "unknown_commit"


class MissingRange(_DiagnosticBase):
    """A release-relevant commit in a workspace names no module."""

    type: Literal["missing_range"] = "missing_range"


class UnknownRangeCommit(_DiagnosticBase):
    """The commit scope names a module that does not exist."""

    type: Literal["unknown_range_commit"] = "unknown_range_commit"


class SkippedCommit(_DiagnosticBase):
    """A housekeeping commit in a workspace names no module."""

    type: Literal["skipped_commit"] = "skipped_commit"


Diagnostic = Annotated[
    Union[UnknownCommit, MissingRange, UnknownRangeCommit, SkippedCommit],
    Field(discriminator="type"),
]
DiagnosticType = Literal[
    "unknown_commit", "missing_range", "unknown_range_commit", "skipped_commit"
]


class VersionBumpSummary(BaseModel):
    """All bumps for one module, merged.

    Attributes:
        module: Module name as written in the commit scopes.
        version: The most severe bump across the module's commits.
        commits: Commits ordered by tag priority.
    """

    module: str
    version: VersionUpdate
    commits: list[CommitWithTag] = Field(default_factory=list)


class VersionUpdateResult(BaseModel):
    """The resolved version transition for one module.

    ``from`` is a Python keyword, so the field is ``from_`` and serializes
    under the alias ``from``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    diff: VersionUpdate
    path: str
    summary: VersionBumpSummary


class ReleaseNoteConfig(BaseModel):
    """Presentation settings for release notes.

    Attributes:
        date: Release date; rendered in UTC as YYYY.MM.DD.
        github_repo: ``owner/repo``. Links are only emitted when set.
        individual_tags: Link per-package ``<name>@<version>`` tags instead of
            the consolidated ``release-<date>`` tag.
        previous_tag: Tag of the previous release, used as the compare base.
        tag_prefix: Prefix for single-package tags.
    """

    date: datetime
    github_repo: str | None = None
    individual_tags: bool = False
    previous_tag: str | None = None
    tag_prefix: str = "v"


class SinglePackageContext(BaseModel):
    type: Literal["single-package"] = "single-package"


class WorkspaceContext(BaseModel):
    type: Literal["workspace"] = "workspace"
    modules: list[WorkspaceModule]


class IndividualPackageContext(BaseModel):
    type: Literal["individual-package"] = "individual-package"
    modules: list[WorkspaceModule]


ReleaseNoteContext = Annotated[
    Union[SinglePackageContext, WorkspaceContext, IndividualPackageContext],
    Field(discriminator="type"),
]


class BumpWorkspaceOptions(BaseModel):
    """Options for a bump-workspaces run.

    Per-package defaults (individual tags and release notes, CHANGELOG.md)
    are filled in from ``publish_mode`` when left unset. Outside per-package
    mode the individual options are always off.
    """

    start: str | None = None
    base: str | None = None
    root: str = "."
    import_map: str | None = None
    release_note_path: str | None = None
    publish_mode: Literal["workspace", "per-package"] = "workspace"
    individual_tags: bool | None = None
    individual_release_notes: bool | None = None
    create_tags: bool = True
    push_tags: bool = True
    tag_prefix: str = "v"
    dry_run: bool | Literal["git"] = False
    git_user_name: str | None = None
    git_user_email: str | None = None
    github_token: str | None = None
    github_repo: str | None = None
    quiet: bool = False

    @model_validator(mode="after")
    def _apply_publish_mode_defaults(self) -> BumpWorkspaceOptions:
        per_package = self.publish_mode == "per-package"
        # Workspace mode always publishes one note and one consolidated tag.
        if not per_package or self.individual_tags is None:
            self.individual_tags = per_package
        if not per_package or self.individual_release_notes is None:
            self.individual_release_notes = per_package
        if self.release_note_path is None:
            self.release_note_path = "CHANGELOG.md" if per_package else "Releases.md"
        return self
