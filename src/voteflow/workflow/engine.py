"""The voting workflow engine.

``WorkflowEngine`` owns the whole state of one voting session: the
current ``Phase``, the voter and proposal registries, the proposal id
counter and the tally result.  Every operation takes the calling
principal explicitly, checks its guards before touching state, and then
applies its mutation and publishes one event while holding the engine
lock.

Usage
-----
::

    from voteflow.workflow import WorkflowEngine

    engine = WorkflowEngine("admin")
    engine.register_voter("admin", "alice")
    engine.start_proposals_registering("admin")
    park = engine.submit_proposal("alice", "Build a park")
    engine.end_proposals_registering("admin")
    engine.start_voting_session("admin")
    engine.cast_vote("alice", park)
    engine.end_voting_session("admin")
    engine.tally_votes("admin")
    assert engine.winning_proposal_id == park
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import replace

from voteflow.workflow.errors import (
    AlreadyVotedError,
    DuplicateError,
    NotFoundError,
    PhaseError,
    SnapshotError,
    UnauthorizedError,
    ValidationError,
)
from voteflow.workflow.events import (
    EventBus,
    PhaseChanged,
    ProposalRegistered,
    VoteCast,
    VoterRegistered,
    WorkflowEvent,
)
from voteflow.workflow.models import (
    FIRST_PROPOSAL_ID,
    SENTINEL_PROPOSAL_ID,
    EngineSnapshot,
    Principal,
    Proposal,
    Voter,
)
from voteflow.workflow.phases import Phase

logger = logging.getLogger(__name__)


def compute_winner(proposals: dict[int, Proposal]) -> int:
    """Return the id with the highest vote count; ties go to the lowest id."""
    return max(sorted(proposals), key=lambda pid: proposals[pid].vote_count)


class WorkflowEngine:
    """Single-authority voting workflow state machine.

    Parameters
    ----------
    administrator:
        The principal allowed to drive phase transitions and register
        voters.  Fixed for the lifetime of the engine.
    bus:
        Where notifications are published.  A private ``EventBus`` is
        created when omitted; reach it through ``engine.bus``.

    Raises
    ------
    ValidationError
        If ``administrator`` is empty.
    """

    def __init__(self, administrator: Principal, *, bus: EventBus | None = None) -> None:
        if not isinstance(administrator, str) or not administrator.strip():
            raise ValidationError("administrator", "must not be empty")
        self._administrator: Principal = administrator
        self._bus: EventBus = bus if bus is not None else EventBus()
        self._lock = threading.RLock()
        self._phase: Phase = Phase.REGISTERING_VOTERS
        self._voters: dict[Principal, Voter] = {}
        self._proposals: dict[int, Proposal] = {SENTINEL_PROPOSAL_ID: Proposal.sentinel()}
        self._next_proposal_id: int = FIRST_PROPOSAL_ID
        self._winning_proposal_id: int | None = None

    def __repr__(self) -> str:
        return (
            f"WorkflowEngine(administrator={self._administrator!r}, "
            f"phase={self._phase.label}, voters={len(self._voters)}, "
            f"proposals={len(self._proposals)})"
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_administrator(self, caller: Principal) -> None:
        if caller != self._administrator:
            raise UnauthorizedError(caller, "administrator")

    def _require_voter(self, caller: Principal) -> Voter:
        voter = self._voters.get(caller)
        if voter is None or not voter.is_registered:
            raise UnauthorizedError(caller, "voter")
        return voter

    def _require_phase(self, expected: Phase, message: str | None = None) -> None:
        if self._phase is not expected:
            raise PhaseError(expected, self._phase, message)

    def _emit(self, event: WorkflowEvent) -> None:
        self._bus.publish(event)

    # ------------------------------------------------------------------
    # Phase transitions
    # ------------------------------------------------------------------

    def _transition(self, caller: Principal, expected: Phase) -> Phase:
        self._require_administrator(caller)
        self._require_phase(expected)
        new_phase = expected.next()
        assert new_phase is not None
        self._phase = new_phase
        logger.info("Phase changed: %s -> %s", expected.label, new_phase.label)
        self._emit(PhaseChanged(previous=expected, new=new_phase))
        return new_phase

    def start_proposals_registering(self, caller: Principal) -> None:
        """Open proposal registration.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not the administrator.
        PhaseError
            If the phase is not ``RegisteringVoters``.
        """
        with self._lock:
            self._require_administrator(caller)
            self._require_phase(Phase.REGISTERING_VOTERS)
            self._proposals.setdefault(SENTINEL_PROPOSAL_ID, Proposal.sentinel())
            self._transition(caller, Phase.REGISTERING_VOTERS)

    def end_proposals_registering(self, caller: Principal) -> None:
        """Close proposal registration."""
        with self._lock:
            self._transition(caller, Phase.PROPOSALS_REGISTRATION_STARTED)

    def start_voting_session(self, caller: Principal) -> None:
        """Open the voting session."""
        with self._lock:
            self._transition(caller, Phase.PROPOSALS_REGISTRATION_ENDED)

    def end_voting_session(self, caller: Principal) -> None:
        """Close the voting session."""
        with self._lock:
            self._transition(caller, Phase.VOTING_SESSION_STARTED)

    def tally_votes(self, caller: Principal) -> int:
        """Compute the winning proposal and move to ``VotesTallied``.

        Every proposal is considered, the sentinel included, so a session
        without votes is won by proposal ``0``.

        Returns
        -------
        int
            The winning proposal id.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not the administrator.
        PhaseError
            If the phase is not ``VotingSessionEnded``.
        """
        with self._lock:
            self._require_administrator(caller)
            self._require_phase(Phase.VOTING_SESSION_ENDED)
            winner = compute_winner(self._proposals)
            self._winning_proposal_id = winner
            logger.info(
                "Tally complete: proposal %d wins with %d vote(s)",
                winner,
                self._proposals[winner].vote_count,
            )
            self._transition(caller, Phase.VOTING_SESSION_ENDED)
            return winner

    def advance(self, caller: Principal) -> Phase:
        """Run whichever transition follows the current phase.

        Returns
        -------
        Phase
            The phase the engine moved to.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not the administrator.
        PhaseError
            If the engine is already in ``VotesTallied``.
        """
        with self._lock:
            self._require_administrator(caller)
            steps = {
                Phase.REGISTERING_VOTERS: self.start_proposals_registering,
                Phase.PROPOSALS_REGISTRATION_STARTED: self.end_proposals_registering,
                Phase.PROPOSALS_REGISTRATION_ENDED: self.start_voting_session,
                Phase.VOTING_SESSION_STARTED: self.end_voting_session,
                Phase.VOTING_SESSION_ENDED: self.tally_votes,
            }
            step = steps.get(self._phase)
            if step is None:
                raise PhaseError(None, self._phase)
            step(caller)
            return self._phase

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    def register_voter(self, caller: Principal, principal: Principal) -> None:
        """Enroll ``principal`` as a voter.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not the administrator.
        PhaseError
            If the phase is not ``RegisteringVoters``.
        ValidationError
            If ``principal`` is empty.
        DuplicateError
            If ``principal`` is already registered.
        """
        with self._lock:
            self._require_administrator(caller)
            self._require_phase(
                Phase.REGISTERING_VOTERS, "Voters registration is not open"
            )
            if not isinstance(principal, str) or not principal.strip():
                raise ValidationError("principal", "must not be empty")
            if principal in self._voters:
                raise DuplicateError(principal)
            self._voters[principal] = Voter(principal=principal)
            logger.debug("Registered voter %r", principal)
            self._emit(VoterRegistered(principal=principal))

    def submit_proposal(self, caller: Principal, description: str) -> int:
        """Store a new proposal from a registered voter.

        The voter check runs before the phase check, so a non-voter is
        told they are not a voter whatever the phase.

        Returns
        -------
        int
            The id assigned to the proposal.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not a registered voter.
        PhaseError
            If the phase is not ``ProposalsRegistrationStarted``.
        ValidationError
            If ``description`` is blank.
        """
        with self._lock:
            self._require_voter(caller)
            self._require_phase(
                Phase.PROPOSALS_REGISTRATION_STARTED, "Proposals are not allowed yet"
            )
            if not isinstance(description, str) or not description.strip():
                raise ValidationError("description", "proposal cannot be empty")
            proposal_id = self._next_proposal_id
            self._proposals[proposal_id] = Proposal(
                proposal_id=proposal_id, description=description
            )
            self._next_proposal_id += 1
            logger.debug("Voter %r registered proposal %d", caller, proposal_id)
            self._emit(ProposalRegistered(proposal_id=proposal_id))
            return proposal_id

    def cast_vote(self, caller: Principal, proposal_id: int) -> None:
        """Record ``caller``'s single vote for ``proposal_id``.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not a registered voter.
        PhaseError
            If the phase is not ``VotingSessionStarted``.
        AlreadyVotedError
            If ``caller`` has voted before.
        ValidationError
            If ``proposal_id`` is not an ``int``.
        NotFoundError
            If no proposal has id ``proposal_id``.
        """
        with self._lock:
            voter = self._require_voter(caller)
            self._require_phase(
                Phase.VOTING_SESSION_STARTED, "Voting session hasn't started yet"
            )
            if voter.has_voted:
                raise AlreadyVotedError(caller)
            if not isinstance(proposal_id, int) or isinstance(proposal_id, bool):
                raise ValidationError("proposal_id", "must be an integer")
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                raise NotFoundError("proposal", proposal_id)
            self._voters[caller] = replace(
                voter, has_voted=True, voted_proposal_id=proposal_id
            )
            self._proposals[proposal_id] = replace(
                proposal, vote_count=proposal.vote_count + 1
            )
            logger.debug("Voter %r voted for proposal %d", caller, proposal_id)
            self._emit(VoteCast(voter=caller, proposal_id=proposal_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_voter(self, caller: Principal, principal: Principal) -> Voter:
        """Return the voter record of ``principal``.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not a registered voter.
        NotFoundError
            If ``principal`` is not registered.
        """
        with self._lock:
            self._require_voter(caller)
            voter = self._voters.get(principal)
            if voter is None:
                raise NotFoundError("voter", principal)
            return voter

    def get_proposal(self, caller: Principal, proposal_id: int) -> Proposal:
        """Return proposal ``proposal_id``; the sentinel is id ``0``.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not a registered voter.
        NotFoundError
            If no proposal has id ``proposal_id``.
        """
        with self._lock:
            self._require_voter(caller)
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                raise NotFoundError("proposal", proposal_id)
            return proposal

    def list_proposals(self, caller: Principal) -> list[Proposal]:
        """Return every proposal in id order, sentinel first."""
        with self._lock:
            self._require_voter(caller)
            return [self._proposals[pid] for pid in sorted(self._proposals)]

    def get_winning_proposal(self, caller: Principal) -> Proposal:
        """Return the proposal that won the tally.

        Raises
        ------
        UnauthorizedError
            If ``caller`` is not a registered voter.
        PhaseError
            If votes have not been tallied yet.
        """
        with self._lock:
            self._require_voter(caller)
            self._require_phase(Phase.VOTES_TALLIED, "Votes have not been tallied yet")
            assert self._winning_proposal_id is not None
            return self._proposals[self._winning_proposal_id]

    def get_phase(self) -> Phase:
        with self._lock:
            return self._phase

    @property
    def phase(self) -> Phase:
        return self.get_phase()

    @property
    def administrator(self) -> Principal:
        return self._administrator

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def winning_proposal_id(self) -> int | None:
        """The tally result, or ``None`` before ``tally_votes`` has run."""
        with self._lock:
            return self._winning_proposal_id

    @property
    def proposal_count(self) -> int:
        """Number of proposals, not counting the sentinel."""
        with self._lock:
            return self._next_proposal_id - FIRST_PROPOSAL_ID

    @property
    def voter_count(self) -> int:
        with self._lock:
            return len(self._voters)

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        """Capture the full engine state atomically."""
        with self._lock:
            return EngineSnapshot(
                phase=self._phase,
                administrator=self._administrator,
                voters=tuple(self._voters.values()),
                proposals=tuple(self._proposals[pid] for pid in sorted(self._proposals)),
                next_proposal_id=self._next_proposal_id,
                winning_proposal_id=self._winning_proposal_id,
            )

    @classmethod
    def restore(
        cls, snapshot: EngineSnapshot, *, bus: EventBus | None = None
    ) -> WorkflowEngine:
        """Rebuild an engine from ``snapshot``.

        No events are published while restoring.

        Raises
        ------
        SnapshotError
            If the snapshot is internally inconsistent.
        """
        problems = check_snapshot(snapshot)
        if problems:
            raise SnapshotError("; ".join(problems))
        try:
            engine = cls(snapshot.administrator, bus=bus)
        except ValidationError as exc:
            raise SnapshotError(str(exc)) from exc
        engine._phase = snapshot.phase
        engine._voters = {v.principal: v for v in snapshot.voters}
        engine._proposals = {p.proposal_id: p for p in snapshot.proposals}
        engine._next_proposal_id = snapshot.next_proposal_id
        engine._winning_proposal_id = snapshot.winning_proposal_id
        logger.debug("Restored %r", engine)
        return engine


def check_snapshot(snapshot: EngineSnapshot) -> list[str]:
    """Return every invariant ``snapshot`` violates; empty when it is sound."""
    problems: list[str] = []
    phase = snapshot.phase

    if not isinstance(snapshot.administrator, str) or not snapshot.administrator.strip():
        problems.append("administrator must not be empty")

    principals = [v.principal for v in snapshot.voters]
    duplicates = sorted(p for p, n in Counter(principals).items() if n > 1)
    if duplicates:
        problems.append(f"duplicate voters: {', '.join(duplicates)}")
    if any(not isinstance(p, str) or not p.strip() for p in principals):
        problems.append("voter registry holds a blank principal")
    if any(not v.is_registered for v in snapshot.voters):
        problems.append("voter registry holds unregistered voters")

    proposals = {p.proposal_id: p for p in snapshot.proposals}
    if len(proposals) != len(snapshot.proposals):
        problems.append("duplicate proposal ids")
    if SENTINEL_PROPOSAL_ID not in proposals:
        problems.append("sentinel proposal 0 is missing")
    if snapshot.next_proposal_id < FIRST_PROPOSAL_ID:
        problems.append(f"next_proposal_id must be >= {FIRST_PROPOSAL_ID}")
    elif set(proposals) != set(range(snapshot.next_proposal_id)):
        problems.append(
            f"proposal ids must be exactly 0..{snapshot.next_proposal_id - 1}"
        )
    for proposal in proposals.values():
        if proposal.vote_count < 0:
            problems.append(f"proposal {proposal.proposal_id} has a negative vote count")
        if not proposal.is_sentinel and not proposal.description.strip():
            problems.append(f"proposal {proposal.proposal_id} has an empty description")
    if len(proposals) > 1 and phase < Phase.PROPOSALS_REGISTRATION_STARTED:
        problems.append(f"proposals exist in phase {phase.label}")

    ballots: Counter[int] = Counter()
    for voter in snapshot.voters:
        if voter.has_voted:
            if voter.voted_proposal_id not in proposals:
                problems.append(
                    f"voter {voter.principal!r} voted for unknown proposal "
                    f"{voter.voted_proposal_id}"
                )
            ballots[voter.voted_proposal_id] += 1
        elif voter.voted_proposal_id != SENTINEL_PROPOSAL_ID:
            problems.append(f"voter {voter.principal!r} has a vote target but has not voted")
    if ballots and phase < Phase.VOTING_SESSION_STARTED:
        problems.append(f"votes exist in phase {phase.label}")
    for proposal in proposals.values():
        if proposal.vote_count != ballots.get(proposal.proposal_id, 0):
            problems.append(
                f"proposal {proposal.proposal_id} counts {proposal.vote_count} vote(s) "
                f"but {ballots.get(proposal.proposal_id, 0)} voter(s) chose it"
            )

    winner = snapshot.winning_proposal_id
    if phase is Phase.VOTES_TALLIED:
        if winner is None:
            problems.append("tallied snapshot has no winning proposal")
        elif proposals and winner != compute_winner(proposals):
            problems.append(f"winning proposal {winner} does not match the vote counts")
    elif winner is not None:
        problems.append(f"winning proposal set in phase {phase.label}")

    return problems
