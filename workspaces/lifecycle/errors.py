"""Domain exceptions for the workspace lifecycle.

Library code raises these; only the CLI translates them into messages and
process exit codes.  Exit codes are stable within a release but are not a
compatibility contract.
"""

from __future__ import annotations


class WorkspacesError(Exception):
    """Base class for every error surfaced to callers."""

    exit_code: int = 1


# -- Authorization / policy ----------------------------------------------------


class AuthorizationError(WorkspacesError, PermissionError):
    """The acting identity may not operate on another owner's workspace."""

    exit_code = 1

    def __init__(self, message: str = "You are not allowed to execute this operation") -> None:
        super().__init__(message)


class PolicyError(WorkspacesError, ValueError):
    """A pool policy rejected the operation."""


class PoolDisabledError(PolicyError):
    exit_code = 2

    def __init__(self, pool: str) -> None:
        super().__init__(f"Filesystem {pool} is disabled. Please try another filesystem.")
        self.pool = pool


class DurationTooHighError(PolicyError):
    exit_code = 3

    def __init__(self, max_days: int) -> None:
        super().__init__(f"Duration can be at most {max_days} days")
        self.max_days = max_days


# -- Store ---------------------------------------------------------------------


class NotFoundError(WorkspacesError, LookupError):
    """No record matched the given key."""

    exit_code = 4


class ConflictError(WorkspacesError, ValueError):
    """A unique-key collision on insert or rename."""

    exit_code = 5


class WorkspaceNotFoundError(NotFoundError):
    def __init__(self, pool: str, owner: str, name: str) -> None:
        super().__init__(f"Could not find a matching filesystem={pool}, user={owner}, name={name}")
        self.pool = pool
        self.owner = owner
        self.name = name


class WorkspaceExistsError(ConflictError):
    def __init__(self, pool: str, owner: str, name: str) -> None:
        super().__init__(f"Workspace {name} of {owner} already exists on {pool}")
        self.pool = pool
        self.owner = owner
        self.name = name


class SchemaError(WorkspacesError):
    """The store was written by a newer release than this one."""

    exit_code = 7


# -- Pool resolution -----------------------------------------------------------


class NoPoolSpecifiedError(WorkspacesError):
    exit_code = 6

    def __init__(self) -> None:
        super().__init__("Please specify a filesystem with `-f <FILESYSTEM>`")


class UnknownPoolError(WorkspacesError, LookupError):
    exit_code = 4

    def __init__(self, pool: str, known: list[str]) -> None:
        names = " ".join(sorted(known))
        super().__init__(f"Invalid filesystem name {pool}. Please use one of the following: {names}")
        self.pool = pool


# -- Volume backend ------------------------------------------------------------


class BackendError(WorkspacesError):
    """The volume manager could not complete a request."""

    exit_code = 8


class BackendTransportError(BackendError):
    """The volume-manager process could not be invoked at all."""


class BackendStatusError(BackendError):
    """The volume manager ran but rejected the request."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"`{' '.join(command)}` failed: {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PropertyParseError(BackendError):
    """The volume manager answered with output of an unexpected shape."""
