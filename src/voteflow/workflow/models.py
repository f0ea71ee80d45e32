"""Registry records held by the workflow engine.

Records are frozen dataclasses.  The engine never mutates a record in
place; it swaps in a new instance built with ``dataclasses.replace`` so
that any record handed to a caller stays a stable snapshot.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from voteflow.workflow.phases import Phase

Principal = str
"""Opaque authenticated caller identity supplied by the boundary layer."""

SENTINEL_PROPOSAL_ID: int = 0
"""Id of the reserved "GENESIS" proposal that represents no choice."""

FIRST_PROPOSAL_ID: int = 1


@dataclass(frozen=True, slots=True)
class Voter:
    """A voter enrolled by the administrator.

    Parameters
    ----------
    principal:
        Identity the voter is keyed by.
    is_registered:
        Always ``True`` for records held in the registry.
    has_voted:
        Set once the voter has cast their vote.
    voted_proposal_id:
        Id of the proposal voted for; ``0`` until a vote is cast.
    """

    principal: Principal
    is_registered: bool = True
    has_voted: bool = False
    voted_proposal_id: int = field(default=SENTINEL_PROPOSAL_ID)


@dataclass(frozen=True, slots=True)
class Proposal:
    """A proposal submitted by a registered voter.

    Parameters
    ----------
    proposal_id:
        Sequential id; ``0`` is reserved for the sentinel proposal.
    description:
        Proposal text.  Empty only for the sentinel.
    vote_count:
        Number of votes cast for this proposal.
    """

    proposal_id: int
    description: str
    vote_count: int = 0

    @property
    def is_sentinel(self) -> bool:
        return self.proposal_id == SENTINEL_PROPOSAL_ID

    @classmethod
    def sentinel(cls) -> Proposal:
        """Return a fresh sentinel proposal (id 0, no text, no votes)."""
        return cls(proposal_id=SENTINEL_PROPOSAL_ID, description="", vote_count=0)


@dataclass(frozen=True)
class EngineSnapshot:
    """Complete, immutable capture of a ``WorkflowEngine``'s state.

    This is what a boundary layer persists between restarts.  Voters are
    ordered by registration, proposals by id.

    Parameters
    ----------
    phase:
        Current workflow phase.
    administrator:
        The administrator principal.
    voters:
        Every registered voter.
    proposals:
        Every proposal, sentinel included.
    next_proposal_id:
        Id the next submitted proposal will receive.
    winning_proposal_id:
        Tally result; ``None`` until votes are tallied.
    """

    phase: Phase
    administrator: Principal
    voters: tuple[Voter, ...] = ()
    proposals: tuple[Proposal, ...] = ()
    next_proposal_id: int = FIRST_PROPOSAL_ID
    winning_proposal_id: int | None = None
