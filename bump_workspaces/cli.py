"""CLI entry point for bump-workspaces."""

from __future__ import annotations

import subprocess

import click

from bump_workspaces.errors import BumpWorkspacesError
from bump_workspaces.models import BumpWorkspaceOptions
from bump_workspaces.pipeline import bump_workspaces

DRY_RUN_VALUES = {"true": True, "false": False, "git": "git"}


@click.command()
@click.version_option(package_name="bump-workspaces")
@click.option("--start", help="Git ref to read commits from. [default: latest tag]")
@click.option("--base", help="Branch to compare against. [default: current branch]")
@click.option(
    "--root",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Repository root holding pyproject.toml.",
)
@click.option(
    "--import-map",
    type=click.Path(dir_okay=False),
    help="File whose version references are rewritten. [default: root pyproject.toml]",
)
@click.option(
    "--release-note-path",
    help="Release note file. [default: Releases.md, CHANGELOG.md per package]",
)
@click.option(
    "--publish-mode",
    type=click.Choice(["workspace", "per-package"]),
    default="workspace",
    show_default=True,
    help="One consolidated release, or one release per package.",
)
@click.option(
    "--individual-tags/--no-individual-tags",
    default=None,
    help="Tag each package as <name>@<version> (per-package mode).",
)
@click.option(
    "--individual-release-notes/--no-individual-release-notes",
    default=None,
    help="Write a release note next to each package (per-package mode).",
)
@click.option("--create-tags/--no-create-tags", default=True, show_default=True)
@click.option("--push-tags/--no-push-tags", default=True, show_default=True)
@click.option("--tag-prefix", default="v", show_default=True, help="Prefix for single-package tags.")
@click.option(
    "--dry-run",
    is_flag=False,
    flag_value="true",
    default="false",
    type=click.Choice(list(DRY_RUN_VALUES)),
    help="Write nothing (--dry-run), or write files but skip git and GitHub (--dry-run git).",
)
@click.option("--git-user-name", envvar="GIT_USER_NAME", help="Author of the release commit.")
@click.option("--git-user-email", envvar="GIT_USER_EMAIL", help="Email of the release commit author.")
@click.option("--github-token", envvar="GITHUB_TOKEN", help="Token used to open the pull request.")
@click.option("--github-repo", envvar="GITHUB_REPOSITORY", help="owner/repo on GitHub.")
@click.option("--quiet", is_flag=True, help="Reduce progress output.")
def cli(
    start: str | None,
    base: str | None,
    root: str,
    import_map: str | None,
    release_note_path: str | None,
    publish_mode: str,
    individual_tags: bool | None,
    individual_release_notes: bool | None,
    create_tags: bool,
    push_tags: bool,
    tag_prefix: str,
    dry_run: str,
    git_user_name: str | None,
    git_user_email: str | None,
    github_token: str | None,
    github_repo: str | None,
    quiet: bool,
) -> None:
    """Bump package versions from Conventional Commits and open a release PR."""
    if publish_mode != "per-package" and (individual_tags or individual_release_notes):
        click.echo(
            "Warning: --individual-* options are only effective "
            "with --publish-mode per-package",
            err=True,
        )

    options = BumpWorkspaceOptions(
        start=start,
        base=base,
        root=root,
        import_map=import_map,
        release_note_path=release_note_path,
        publish_mode=publish_mode,
        individual_tags=individual_tags,
        individual_release_notes=individual_release_notes,
        create_tags=create_tags,
        push_tags=push_tags,
        tag_prefix=tag_prefix,
        dry_run=DRY_RUN_VALUES[dry_run],
        git_user_name=git_user_name,
        git_user_email=git_user_email,
        github_token=github_token,
        github_repo=github_repo,
        quiet=quiet,
    )
    try:
        bump_workspaces(options)
    except BumpWorkspacesError as e:
        raise click.ClickException(str(e)) from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise click.ClickException(f"{' '.join(e.cmd)} failed: {stderr}") from e
