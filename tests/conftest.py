"""Shared test fixtures for voteflow.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. Add project-wide fixtures here; keep
domain-specific fixtures close to the tests that use them.
"""
from __future__ import annotations

from collections.abc import Callable

import pytest

from voteflow.workflow import EventBus, EventRecorder, Phase, WorkflowEngine

ADMIN = "admin"


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "voteflow"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"


@pytest.fixture()
def admin() -> str:
    return ADMIN


@pytest.fixture()
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture()
def engine(recorder: EventRecorder) -> WorkflowEngine:
    """A fresh engine administered by ``"admin"`` with a recording bus."""
    bus = EventBus()
    bus.subscribe(recorder)
    return WorkflowEngine(ADMIN, bus=bus)


@pytest.fixture()
def advance_to() -> Callable[[WorkflowEngine, Phase], None]:
    """Return a helper that drives an engine forward to ``phase``."""

    def _advance(target_engine: WorkflowEngine, phase: Phase) -> None:
        while target_engine.phase < phase:
            target_engine.advance(target_engine.administrator)

    return _advance


@pytest.fixture()
def voting_engine(
    engine: WorkflowEngine,
    advance_to: Callable[[WorkflowEngine, Phase], None],
) -> WorkflowEngine:
    """An engine in ``VotingSessionStarted`` with voters alice, bob and carol
    and proposals 1 ("Build a park") and 2 ("Repair the library").
    """
    for principal in ("alice", "bob", "carol"):
        engine.register_voter(ADMIN, principal)
    engine.start_proposals_registering(ADMIN)
    engine.submit_proposal("alice", "Build a park")
    engine.submit_proposal("bob", "Repair the library")
    advance_to(engine, Phase.VOTING_SESSION_STARTED)
    return engine
