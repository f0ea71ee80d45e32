#!/usr/bin/env python3
"""Example: Persistence — voteflow

Stop an election halfway through voting, write it to YAML, restore
it into a fresh engine and finish the count.

Usage:
    python examples/02_persistence.py
"""
from __future__ import annotations

import voteflow

ADMIN = "city-hall"


def main() -> None:
    engine = voteflow.WorkflowEngine(ADMIN)
    for name in ("alice", "bob"):
        engine.register_voter(ADMIN, name)
    engine.start_proposals_registering(ADMIN)
    engine.submit_proposal("alice", "Build a park")
    engine.submit_proposal("bob", "Repair the library")
    engine.advance(ADMIN)
    engine.advance(ADMIN)
    engine.cast_vote("alice", 2)

    text = voteflow.dump_snapshot(engine, "yaml")
    print(text)

    restored = voteflow.load_snapshot(text, "yaml")
    try:
        restored.cast_vote("alice", 1)
    except voteflow.AlreadyVotedError as exc:
        print(f"Rejected: {exc}")
    restored.cast_vote("bob", 2)
    restored.advance(ADMIN)
    restored.advance(ADMIN)
    print(f"Winner after restore: proposal #{restored.winning_proposal_id}")


if __name__ == "__main__":
    main()
