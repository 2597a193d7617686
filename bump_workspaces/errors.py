"""Exception types for bump-workspaces.

Classification problems are not exceptions: they are reported as diagnostic
values (see models.Diagnostic). Exceptions are reserved for broken
configuration and for version transitions that should never happen.
"""

from __future__ import annotations


class BumpWorkspacesError(Exception):
    """Base class for all bump-workspaces errors."""


class ConfigurationError(BumpWorkspacesError):
    """A manifest is missing, malformed, or lacks required fields."""


class UnexpectedVersionUpdateError(BumpWorkspacesError):
    """Two versions differ in a way no known transition explains.

    Raised when the current and historical versions of a module are equal
    (and no prerelease was dropped). This means the module snapshots are
    inconsistent; picking a fallback diff would corrupt the version history.
    """

    def __init__(self, old: str, new: str) -> None:
        self.old = old
        self.new = new
        super().__init__(f"Unexpected manual version update: {old} -> {new}")
