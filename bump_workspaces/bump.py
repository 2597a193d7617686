"""Version resolution: decide each module's next version.

resolve_version_update() is a pure function of the aggregated summary and
the current/historical module records. apply_version_bump() wraps it with
the manifest writes.
"""

from __future__ import annotations

import re
from pathlib import Path

from .deps import rewrite_pyproject
from .models import VersionBumpSummary, VersionUpdate, VersionUpdateResult, WorkspaceModule
from .versions import calc_version_diff, increment, parse_version


def resolve_version_update(
    summary: VersionBumpSummary,
    module: WorkspaceModule,
    old_module: WorkspaceModule | None,
) -> VersionUpdateResult:
    """Compute the version transition for one module.

    Three cases:
    - New module (no historical record): from 0.0.0 to the current version.
    - Manual edit (historical and current versions differ): the edit wins
      over whatever the commits imply.
    - Otherwise the commit-derived bump is applied to the current version.
      A prerelease version always gets a prerelease bump. In 0.x.y, major
      is downgraded to minor and minor to patch.

    Raises:
        UnexpectedVersionUpdateError: If a manual edit has no recognizable
            transition.
    """
    if old_module is None:
        diff = calc_version_diff(module.version, "0.0.0")
        return _result("0.0.0", module.version, diff, module, summary)

    if old_module.version != module.version:
        diff = calc_version_diff(module.version, old_module.version)
        return _result(old_module.version, module.version, diff, module, summary)

    current = parse_version(module.version)
    diff: VersionUpdate = summary.version
    if current.prerelease:
        diff = "prerelease"
    elif current.major == 0:
        # 0.x.y: breaking changes are minor, features are patch.
        if diff == "major":
            diff = "minor"
        elif diff == "minor":
            diff = "patch"
    return _result(module.version, increment(module.version, diff), diff, module, summary)


def _result(
    from_: str,
    to: str,
    diff: VersionUpdate,
    module: WorkspaceModule,
    summary: VersionBumpSummary,
) -> VersionUpdateResult:
    return VersionUpdateResult(
        from_=from_,
        to=to,
        diff=diff,
        path=module.config_path,
        summary=summary.model_copy(update={"version": diff}),
    )


def update_version_references(
    text: str,
    name: str,
    old_version: str,
    new_version: str,
    *,
    version_field: bool = False,
) -> str:
    """Rewrite references to ``name`` at ``old_version`` in manifest text.

    Handles ``name@1.0.0``, ``name@^1.0.0`` (a single range operator between
    ``@`` and the version) and exact pins ``name==1.0.0``. With
    ``version_field``, the first ``version = "1.0.0"`` line is rewritten too.

    Examples:
        update_version_references('"pkg-a@^1.0.0"', "pkg-a", "1.0.0", "1.1.0")
            → '"pkg-a@^1.1.0"'
    """
    pattern = re.compile(
        rf"(?<![\w.-]){re.escape(name)}(@|==)([^~\d\s]?){re.escape(old_version)}(?![\w.+-])"
    )
    text = pattern.sub(lambda m: f"{name}{m.group(1)}{m.group(2)}{new_version}", text)
    if version_field:
        text = re.sub(
            rf"^(version\s*=\s*)([\"']){re.escape(old_version)}\2",
            lambda m: f"{m.group(1)}{m.group(2)}{new_version}{m.group(2)}",
            text,
            count=1,
            flags=re.MULTILINE,
        )
    return text


def apply_version_bump(
    summary: VersionBumpSummary,
    module: WorkspaceModule,
    old_module: WorkspaceModule | None,
    import_map_text: str,
    *,
    import_map_path: str | None = None,
    dry_run: bool = False,
) -> tuple[str, VersionUpdateResult]:
    """Resolve a module's bump and apply it.

    New modules and manually edited versions are reported as-is: nothing is
    written. Otherwise the module's pyproject.toml gets the new version
    (skipped on dry run), ``module.version`` is updated and references in
    the import map text are rewritten.

    Returns:
        Tuple of (updated import map text, resolved update).
    """
    result = resolve_version_update(summary, module, old_module)
    if old_module is None:
        print(f"  New module {module.name} detected.")
        return import_map_text, result
    if old_module.version != module.version:
        print(
            f"  Manual version update detected for {module.name}: "
            f"{old_module.version} → {module.version}"
        )
        return import_map_text, result

    if not dry_run:
        rewrite_pyproject(Path(module.config_path), result.to, {})
        print(f"  Updated {module.config_path} with version {result.to}")
    module.version = result.to

    same_file = import_map_path is not None and (
        Path(import_map_path).resolve() == Path(module.config_path).resolve()
    )
    import_map_text = update_version_references(
        import_map_text,
        module.name,
        result.from_,
        result.to,
        version_field=same_file,
    )
    return import_map_text, result
