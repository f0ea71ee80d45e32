"""Workflow phases for a voting session.

The six phases form a strict linear sequence.  The integer value of each
member is its position in the sequence, so phases compare and sort in
workflow order.
"""
from __future__ import annotations

from enum import IntEnum


class Phase(IntEnum):
    """Ordered phases of the voting workflow.

    REGISTERING_VOTERS
        The administrator enrolls voter principals.
    PROPOSALS_REGISTRATION_STARTED
        Registered voters may submit proposals.
    PROPOSALS_REGISTRATION_ENDED
        Proposals are frozen; voting has not opened yet.
    VOTING_SESSION_STARTED
        Registered voters may cast their single vote.
    VOTING_SESSION_ENDED
        Votes are frozen; awaiting the tally.
    VOTES_TALLIED
        Terminal phase; the winning proposal is known.
    """

    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5

    @property
    def label(self) -> str:
        """Return the CamelCase display name, e.g. ``"RegisteringVoters"``."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def is_terminal(self) -> bool:
        return self is Phase.VOTES_TALLIED

    def next(self) -> Phase | None:
        """Return the phase that follows this one, or ``None`` if terminal."""
        if self.is_terminal:
            return None
        return Phase(self.value + 1)

    @classmethod
    def from_label(cls, label: str) -> Phase:
        """Look up a phase by its ``label`` or its enum member name.

        Raises
        ------
        ValueError
            If ``label`` does not name a phase.
        """
        for phase in cls:
            if label in (phase.label, phase.name):
                return phase
        raise ValueError(f"Unknown phase {label!r}")

    def __str__(self) -> str:
        return self.label
