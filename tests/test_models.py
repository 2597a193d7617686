"""Tests for bump_workspaces.models."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from bump_workspaces.models import (
    BumpWorkspaceOptions,
    Commit,
    Diagnostic,
    ReleaseNoteContext,
    SkippedCommit,
    UnknownRangeCommit,
    VersionBumpSummary,
    VersionUpdateResult,
    WorkspaceContext,
    WorkspaceModule,
)


class TestCommit:
    def test_body_defaults_empty(self) -> None:
        assert Commit(hash="a" * 40, subject="feat: x").body == ""

    def test_frozen(self) -> None:
        commit = Commit(hash="a" * 40, subject="feat: x")
        with pytest.raises(ValidationError):
            commit.subject = "changed"


class TestWorkspaceModule:
    def test_requires_name(self) -> None:
        with pytest.raises(ValidationError):
            WorkspaceModule(name="", version="1.0.0", config_path="pyproject.toml")

    def test_version_is_mutable(self) -> None:
        module = WorkspaceModule(name="foo", version="1.0.0", config_path="pyproject.toml")
        module.version = "1.1.0"
        assert module.version == "1.1.0"


class TestDiagnostic:
    def test_discriminated_by_type(self) -> None:
        adapter = TypeAdapter(Diagnostic)
        diagnostic = adapter.validate_python(
            {
                "type": "unknown_range_commit",
                "commit": {"hash": "a" * 40, "subject": "fix(nope): x"},
                "reason": "Unknown module: nope.",
            }
        )
        assert isinstance(diagnostic, UnknownRangeCommit)

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(Diagnostic).validate_python(
                {"type": "other", "commit": {"hash": "", "subject": ""}, "reason": ""}
            )

    def test_type_defaults(self) -> None:
        diagnostic = SkippedCommit(commit=Commit(hash="", subject="chore: x"), reason="r")
        assert diagnostic.type == "skipped_commit"


class TestVersionUpdateResult:
    def test_accepts_alias_and_field_name(self) -> None:
        summary = VersionBumpSummary(module="foo", version="patch")
        by_alias = VersionUpdateResult.model_validate(
            {"from": "1.0.0", "to": "1.0.1", "diff": "patch", "path": "p", "summary": summary}
        )
        by_name = VersionUpdateResult(
            from_="1.0.0", to="1.0.1", diff="patch", path="p", summary=summary
        )
        assert by_alias == by_name

    def test_rejects_unknown_diff(self) -> None:
        with pytest.raises(ValidationError):
            VersionUpdateResult(
                from_="1.0.0",
                to="1.0.1",
                diff="micro",
                path="p",
                summary=VersionBumpSummary(module="foo", version="patch"),
            )


class TestReleaseNoteContext:
    def test_discriminated_by_type(self) -> None:
        context = TypeAdapter(ReleaseNoteContext).validate_python(
            {"type": "workspace", "modules": []}
        )
        assert isinstance(context, WorkspaceContext)


class TestBumpWorkspaceOptions:
    """Tests for BumpWorkspaceOptions defaults."""

    def test_workspace_defaults(self) -> None:
        options = BumpWorkspaceOptions()
        assert options.individual_tags is False
        assert options.individual_release_notes is False
        assert options.release_note_path == "Releases.md"
        assert options.create_tags and options.push_tags
        assert options.tag_prefix == "v"
        assert options.dry_run is False

    def test_per_package_defaults(self) -> None:
        options = BumpWorkspaceOptions(publish_mode="per-package")
        assert options.individual_tags is True
        assert options.individual_release_notes is True
        assert options.release_note_path == "CHANGELOG.md"

    def test_explicit_values_win(self) -> None:
        options = BumpWorkspaceOptions(
            publish_mode="per-package",
            individual_tags=False,
            release_note_path="NEWS.md",
        )
        assert options.individual_tags is False
        assert options.individual_release_notes is True
        assert options.release_note_path == "NEWS.md"

    def test_individual_options_ignored_in_workspace_mode(self) -> None:
        options = BumpWorkspaceOptions(individual_tags=True, individual_release_notes=True)
        assert options.individual_tags is False
        assert options.individual_release_notes is False
        assert options.release_note_path == "Releases.md"

    def test_dry_run_values(self) -> None:
        assert BumpWorkspaceOptions(dry_run="git").dry_run == "git"
        assert BumpWorkspaceOptions(dry_run=True).dry_run is True
        with pytest.raises(ValidationError):
            BumpWorkspaceOptions(dry_run="network")

    def test_rejects_unknown_publish_mode(self) -> None:
        with pytest.raises(ValidationError):
            BumpWorkspaceOptions(publish_mode="monorepo")
