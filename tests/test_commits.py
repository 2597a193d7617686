"""Tests for bump_workspaces.commits."""

from __future__ import annotations

from bump_workspaces.commits import (
    check_module_name,
    classify_commits,
    get_module,
    is_release_commit,
    parse_commit_message,
)
from bump_workspaces.models import (
    Commit,
    MissingRange,
    SkippedCommit,
    UnknownCommit,
    UnknownRangeCommit,
    VersionBump,
    WorkspaceModule,
)


def _commit(subject: str, hash_: str = "a" * 40) -> Commit:
    return Commit(hash=hash_, subject=subject)


def _modules(*names: str) -> list[WorkspaceModule]:
    return [
        WorkspaceModule(name=n, version="1.0.0", config_path=f"packages/{n}/pyproject.toml")
        for n in names
    ]


class TestParseCommitMessage:
    """Tests for parse_commit_message()."""

    def test_scoped_feature(self) -> None:
        """feat(foo) targets foo with a minor bump."""
        commit = _commit("feat(foo): add x")
        result = parse_commit_message(commit, _modules("foo", "bar"))

        assert result == [VersionBump(module="foo", tag="feat", version="minor", commit=commit)]

    def test_wildcard_scope_targets_every_module(self) -> None:
        commit = _commit("fix(*): patch all")
        result = parse_commit_message(commit, _modules("foo", "bar"))

        assert isinstance(result, list)
        assert [b.module for b in result] == ["foo", "bar"]
        assert all(b.tag == "fix" and b.version == "patch" for b in result)
        assert all(b.commit is commit for b in result)

    def test_scope_list(self) -> None:
        result = parse_commit_message(_commit("perf(foo, bar,baz): faster"), _modules("foo"))

        assert isinstance(result, list)
        # Names are not validated here.
        assert [b.module for b in result] == ["foo", "bar", "baz"]

    def test_scopeless_housekeeping_in_workspace_is_skipped(self) -> None:
        result = parse_commit_message(_commit("chore: tidy"), _modules("foo", "bar"))

        assert isinstance(result, SkippedCommit)
        assert result.type == "skipped_commit"
        assert result.reason == "The commit message does not specify a module."

    def test_scopeless_feature_in_workspace_is_missing_range(self) -> None:
        result = parse_commit_message(_commit("feat: something"), _modules("foo", "bar"))

        assert isinstance(result, MissingRange)
        assert result.type == "missing_range"

    def test_scopeless_commit_targets_sole_module(self) -> None:
        result = parse_commit_message(_commit("chore: tidy"), _modules("foo"))

        assert isinstance(result, list)
        assert len(result) == 1
        assert (result[0].module, result[0].tag, result[0].version) == ("foo", "chore", "patch")

    def test_bang_forces_major(self) -> None:
        result = parse_commit_message(_commit("fix(foo)!: drop py2"), _modules("foo"))

        assert isinstance(result, list)
        assert result[0].version == "major"
        assert result[0].tag == "fix"

    def test_breaking_tag(self) -> None:
        result = parse_commit_message(_commit("BREAKING(foo): remove api"), _modules("foo"))

        assert isinstance(result, list)
        assert result[0].version == "major"

    def test_unstable_scope_is_patch(self) -> None:
        result = parse_commit_message(
            _commit("feat(unstable/foo, bar/unstable): try x"), _modules("foo", "bar")
        )

        assert isinstance(result, list)
        assert [(b.module, b.version) for b in result] == [("foo", "patch"), ("bar", "patch")]

    def test_not_conventional(self) -> None:
        result = parse_commit_message(_commit("Merge branch 'main'"), _modules("foo"))

        assert isinstance(result, UnknownCommit)
        assert result.reason == "The commit message does not match the default pattern."

    def test_unknown_tag(self) -> None:
        result = parse_commit_message(_commit("wip(foo): half done"), _modules("foo"))

        assert isinstance(result, UnknownCommit)
        assert result.reason == "Unknown commit tag: wip."


class TestGetModule:
    """Tests for get_module()."""

    def test_exact_name(self) -> None:
        modules = _modules("foo", "bar")
        assert get_module("bar", modules) is modules[1]

    def test_suffix_match_for_scoped_names(self) -> None:
        modules = _modules("@scope/foo")
        assert get_module("foo", modules) is modules[0]

    def test_normalized_names(self) -> None:
        modules = _modules("My_Package")
        assert get_module("my-package", modules) is modules[0]

    def test_first_match_wins(self) -> None:
        modules = _modules("@one/foo", "@two/foo")
        assert get_module("foo", modules) is modules[0]

    def test_no_match(self) -> None:
        assert get_module("missing", _modules("foo")) is None
        assert get_module("oo", _modules("foo")) is None


class TestCheckModuleName:
    def test_known_module(self) -> None:
        bump = VersionBump(module="foo", tag="feat", version="minor", commit=_commit("x"))
        assert check_module_name(bump, _modules("foo")) is None

    def test_unknown_module(self) -> None:
        bump = VersionBump(module="nope", tag="feat", version="minor", commit=_commit("x"))
        result = check_module_name(bump, _modules("foo"))

        assert isinstance(result, UnknownRangeCommit)
        assert result.reason == "Unknown module: nope."


class TestIsReleaseCommit:
    def test_release_commits(self) -> None:
        assert is_release_commit(_commit("1.2.3"))
        assert is_release_commit(_commit("v0.1.0"))
        assert is_release_commit(_commit("Release 2.0.0"))

    def test_regular_commit(self) -> None:
        assert not is_release_commit(_commit("feat(foo): 1.2.3 support"))


class TestClassifyCommits:
    """Tests for classify_commits()."""

    def test_mixed_commits(self) -> None:
        """One bad commit never stops the others."""
        commits = [
            _commit("feat(foo): a", "1" * 40),
            _commit("garbage", "2" * 40),
            _commit("fix(foo, nope): b", "3" * 40),
            _commit("v1.0.0", "4" * 40),
            _commit("docs: readme", "5" * 40),
        ]
        bumps, diagnostics = classify_commits(commits, _modules("foo", "bar"))

        assert [(b.module, b.commit.hash[0]) for b in bumps] == [("foo", "1"), ("foo", "3")]
        assert [d.type for d in diagnostics] == [
            "unknown_commit",
            "unknown_range_commit",
            "skipped_commit",
        ]

    def test_bumps_use_module_name(self) -> None:
        """Scope spellings that match one module are grouped under its name."""
        commits = [
            _commit("feat(pkg_a): a", "1" * 40),
            _commit("fix(PKG-A): b", "2" * 40),
            _commit("fix(bar): c", "3" * 40),
        ]
        bumps, diagnostics = classify_commits(commits, _modules("pkg-a", "@scope/bar"))

        assert [b.module for b in bumps] == ["pkg-a", "pkg-a", "@scope/bar"]
        assert diagnostics == []

    def test_custom_parser(self) -> None:
        def parse_everything_as_patch(
            commit: Commit, modules: list[WorkspaceModule]
        ) -> list[VersionBump]:
            return [
                VersionBump(module=m.name, tag="chore", version="patch", commit=commit)
                for m in modules
            ]

        bumps, diagnostics = classify_commits(
            [_commit("anything goes")], _modules("foo", "bar"), parse_everything_as_patch
        )

        assert [b.module for b in bumps] == ["foo", "bar"]
        assert diagnostics == []
