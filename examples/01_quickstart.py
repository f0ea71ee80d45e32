#!/usr/bin/env python3
"""Example: Quickstart — voteflow

Minimal working example: enroll voters, collect proposals, vote,
and tally the winner while printing every emitted event.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install voteflow
"""
from __future__ import annotations

import voteflow

ADMIN = "city-hall"


def main() -> None:
    print(f"voteflow version: {voteflow.__version__}")

    bus = voteflow.EventBus()
    bus.subscribe(lambda event: print(f"  {event}"))
    engine = voteflow.WorkflowEngine(ADMIN, bus=bus)

    # Step 1: Enroll voters
    for name in ("alice", "bob", "carol"):
        engine.register_voter(ADMIN, name)

    # Step 2: Collect proposals
    engine.start_proposals_registering(ADMIN)
    park = engine.submit_proposal("alice", "Build a park")
    library = engine.submit_proposal("bob", "Repair the library")
    engine.end_proposals_registering(ADMIN)

    # Step 3: Vote
    engine.start_voting_session(ADMIN)
    engine.cast_vote("alice", park)
    engine.cast_vote("bob", library)
    engine.cast_vote("carol", park)
    engine.end_voting_session(ADMIN)

    # Step 4: Tally
    engine.tally_votes(ADMIN)
    winner = engine.get_winning_proposal("alice")
    print(f"Winner: #{winner.proposal_id} {winner.description!r} "
          f"with {winner.vote_count} vote(s)")


if __name__ == "__main__":
    main()
