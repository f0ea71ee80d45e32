"""Voting workflow core.

Exports the ``WorkflowEngine`` state machine, its ``Phase`` sequence,
registry records, notification types and error hierarchy.
"""
from __future__ import annotations

from voteflow.workflow.engine import WorkflowEngine, check_snapshot, compute_winner
from voteflow.workflow.errors import (
    AlreadyVotedError,
    DuplicateError,
    NotFoundError,
    PhaseError,
    SnapshotError,
    UnauthorizedError,
    ValidationError,
    VotingError,
)
from voteflow.workflow.events import (
    EventBus,
    EventKind,
    EventRecorder,
    PhaseChanged,
    ProposalRegistered,
    VoteCast,
    VoterRegistered,
    WorkflowEvent,
)
from voteflow.workflow.models import (
    SENTINEL_PROPOSAL_ID,
    EngineSnapshot,
    Principal,
    Proposal,
    Voter,
)
from voteflow.workflow.phases import Phase

__all__ = [
    "WorkflowEngine",
    "check_snapshot",
    "compute_winner",
    "Phase",
    "Principal",
    "Voter",
    "Proposal",
    "EngineSnapshot",
    "SENTINEL_PROPOSAL_ID",
    "EventBus",
    "EventKind",
    "EventRecorder",
    "WorkflowEvent",
    "PhaseChanged",
    "VoterRegistered",
    "ProposalRegistered",
    "VoteCast",
    "VotingError",
    "UnauthorizedError",
    "PhaseError",
    "DuplicateError",
    "ValidationError",
    "AlreadyVotedError",
    "NotFoundError",
    "SnapshotError",
]
