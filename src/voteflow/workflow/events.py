"""Notifications emitted by the workflow engine.

Each successful mutation publishes one event to the engine's
``EventBus`` after the state change is committed.  Events are frozen
dataclasses tagged with an ``EventKind`` so subscribers can dispatch on
``event.kind`` or with ``isinstance`` checks.

Usage
-----
::

    from voteflow.workflow import EventBus, EventRecorder, WorkflowEngine

    bus = EventBus()
    recorder = EventRecorder()
    bus.subscribe(recorder)
    engine = WorkflowEngine("admin", bus=bus)
    engine.register_voter("admin", "alice")
    print(recorder.events)  # [VoterRegistered(principal='alice', ...)]
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Union

from voteflow.workflow.phases import Phase

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Enumeration of all notification kinds."""

    PHASE_CHANGED = auto()
    VOTER_REGISTERED = auto()
    PROPOSAL_REGISTERED = auto()
    VOTE_CAST = auto()


# ---------------------------------------------------------------------------
# Event dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhaseChanged:
    """The workflow advanced from ``previous`` to ``new``."""

    previous: Phase
    new: Phase
    kind: EventKind = field(default=EventKind.PHASE_CHANGED, init=False)

    def __str__(self) -> str:
        return f"[phase] {self.previous.label} -> {self.new.label}"


@dataclass(frozen=True)
class VoterRegistered:
    """A principal was enrolled as a voter."""

    principal: str
    kind: EventKind = field(default=EventKind.VOTER_REGISTERED, init=False)

    def __str__(self) -> str:
        return f"[voter] {self.principal} registered"


@dataclass(frozen=True)
class ProposalRegistered:
    """A proposal was stored under ``proposal_id``."""

    proposal_id: int
    kind: EventKind = field(default=EventKind.PROPOSAL_REGISTERED, init=False)

    def __str__(self) -> str:
        return f"[proposal] #{self.proposal_id} registered"


@dataclass(frozen=True)
class VoteCast:
    """``voter`` cast their vote for ``proposal_id``."""

    voter: str
    proposal_id: int
    kind: EventKind = field(default=EventKind.VOTE_CAST, init=False)

    def __str__(self) -> str:
        return f"[vote] {self.voter} voted for #{self.proposal_id}"


WorkflowEvent = Union[PhaseChanged, VoterRegistered, ProposalRegistered, VoteCast]

Subscriber = Callable[[WorkflowEvent], None]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class EventBus:
    """Synchronous, ordered fan-out of events to subscribers.

    Subscribers are called in subscription order on the publishing thread.
    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        """Add ``subscriber`` to the end of the dispatch list."""
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove ``subscriber``.

        Raises
        ------
        ValueError
            If ``subscriber`` was never subscribed.
        """
        self._subscribers.remove(subscriber)

    def publish(self, event: WorkflowEvent) -> None:
        """Deliver ``event`` to every subscriber in order."""
        logger.debug("Publishing %s to %d subscriber(s)", event, len(self._subscribers))
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed while handling %s; skipping.",
                    subscriber,
                    event,
                )

    def __len__(self) -> int:
        return len(self._subscribers)


class EventRecorder:
    """Subscriber that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: list[WorkflowEvent] = []

    def __call__(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> list[WorkflowEvent]:
        """Return the recorded events whose ``kind`` is ``kind``."""
        return [e for e in self.events if e.kind is kind]

    def clear(self) -> None:
        self.events.clear()
