"""Error types raised by the workflow engine.

Every engine operation either completes or raises exactly one of these
errors before touching any state.  All of them derive from
``VotingError`` so the boundary layer can catch the whole family at once,
and each carries its structured details as attributes alongside a
human-readable message.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from voteflow.workflow.phases import Phase


class VotingError(Exception):
    """Base class for all errors raised by engine operations."""


class UnauthorizedError(VotingError):
    """Raised when the caller lacks the role an operation requires.

    Parameters
    ----------
    principal:
        The offending caller.
    role:
        The required role, ``"administrator"`` or ``"voter"``.
    """

    def __init__(self, principal: str, role: str) -> None:
        self.principal = principal
        self.role = role
        if role == "voter":
            message = f"{principal!r} is not a voter"
        else:
            message = f"{principal!r} is not the {role}"
        super().__init__(message)


class PhaseError(VotingError):
    """Raised when an operation is invoked outside its required phase.

    Parameters
    ----------
    expected:
        The phase the operation requires, or ``None`` when no phase
        would allow it (advancing past the terminal phase).
    actual:
        The engine's phase at the time of the call.
    message:
        Optional override for the default message.
    """

    def __init__(
        self,
        expected: Phase | None,
        actual: Phase,
        message: str | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        if message is None:
            if expected is None:
                message = f"No phase follows {actual.label}"
            else:
                message = f"Expected phase {expected.label}, but current phase is {actual.label}"
        super().__init__(message)


class DuplicateError(VotingError):
    """Raised when registering a principal that is already a voter."""

    def __init__(self, principal: str) -> None:
        self.principal = principal
        super().__init__(f"{principal!r} is already registered")


class ValidationError(VotingError):
    """Raised when an argument is malformed.

    Parameters
    ----------
    field:
        Name of the offending argument.
    message:
        What is wrong with it.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class AlreadyVotedError(VotingError):
    """Raised on a second vote from the same voter."""

    def __init__(self, principal: str) -> None:
        self.principal = principal
        super().__init__(f"{principal!r} has already voted")


class NotFoundError(VotingError, LookupError):
    """Raised when a voter or proposal is not in the registry.

    Parameters
    ----------
    kind:
        ``"proposal"`` or ``"voter"``.
    key:
        The id or principal that was looked up.
    """

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} {key!r} not found")


class SnapshotError(ValueError):
    """Raised when snapshot data is malformed or violates an engine invariant."""
