"""voteflow — single-authority voting workflow engine.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import voteflow

    engine = voteflow.WorkflowEngine("admin")
    engine.register_voter("admin", "alice")
    engine.start_proposals_registering("admin")
    park = engine.submit_proposal("alice", "Build a park")
    engine.end_proposals_registering("admin")
    engine.start_voting_session("admin")
    engine.cast_vote("alice", park)
    engine.end_voting_session("admin")
    engine.tally_votes("admin")

    # Persist and restore
    text = voteflow.dump_snapshot(engine)
    engine = voteflow.load_snapshot(text)

    voteflow.__version__
    '0.1.0'
"""
from __future__ import annotations

from voteflow.workflow import (
    AlreadyVotedError,
    DuplicateError,
    EngineSnapshot,
    EventBus,
    EventKind,
    EventRecorder,
    NotFoundError,
    Phase,
    PhaseChanged,
    PhaseError,
    Proposal,
    ProposalRegistered,
    SnapshotError,
    UnauthorizedError,
    ValidationError,
    VoteCast,
    Voter,
    VoterRegistered,
    VotingError,
    WorkflowEngine,
)

__version__: str = "0.1.0"


def dump_snapshot(engine: WorkflowEngine, fmt: str = "json") -> str:
    """Serialize the current state of ``engine``.

    Parameters
    ----------
    engine:
        The engine to capture.
    fmt:
        ``"json"`` or ``"yaml"``.

    Returns
    -------
    str
        The serialized snapshot.
    """
    from voteflow.snapshot import SnapshotSerializer

    serializer = SnapshotSerializer()
    snapshot = engine.snapshot()
    if fmt == "yaml":
        return serializer.to_yaml(snapshot)
    if fmt == "json":
        return serializer.to_json(snapshot)
    raise ValueError(f"Unknown snapshot format {fmt!r}; expected 'json' or 'yaml'")


def load_snapshot(
    text: str, fmt: str = "json", *, bus: EventBus | None = None
) -> WorkflowEngine:
    """Rebuild an engine from serialized snapshot text.

    Raises
    ------
    SnapshotError
        If the text is malformed or describes an inconsistent state.
    """
    from voteflow.snapshot import SnapshotSerializer

    serializer = SnapshotSerializer()
    if fmt == "yaml":
        snapshot = serializer.from_yaml(text)
    elif fmt == "json":
        snapshot = serializer.from_json(text)
    else:
        raise ValueError(f"Unknown snapshot format {fmt!r}; expected 'json' or 'yaml'")
    return WorkflowEngine.restore(snapshot, bus=bus)


__all__ = [
    "__version__",
    "dump_snapshot",
    "load_snapshot",
    "WorkflowEngine",
    "EngineSnapshot",
    "Phase",
    "Voter",
    "Proposal",
    "EventBus",
    "EventKind",
    "EventRecorder",
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
