"""Snapshot serialization for persisting engine state.

Converts ``EngineSnapshot`` objects to and from plain dicts, JSON and
YAML so that a boundary layer can store a voting session between
restarts.  Phases are written by label (``"VotingSessionStarted"``) so
stored files stay readable.

Usage
-----
::

    from voteflow.snapshot import SnapshotSerializer
    from voteflow.workflow import WorkflowEngine

    serializer = SnapshotSerializer()
    text = serializer.to_json(engine.snapshot())
    engine2 = WorkflowEngine.restore(serializer.from_json(text))
"""
from __future__ import annotations

import json
from typing import Any

import yaml

from voteflow.workflow.errors import SnapshotError
from voteflow.workflow.models import EngineSnapshot, Proposal, Voter
from voteflow.workflow.phases import Phase

FORMAT_VERSION: int = 1


class SnapshotSerializer:
    """Converts between ``EngineSnapshot`` objects and plain Python dicts.

    The serialized form carries a ``"kind"`` discriminator and a
    ``"format_version"`` so that unrelated documents are rejected early.
    Deserialization only checks shape; invariant checks belong to
    ``WorkflowEngine.restore``.
    """

    # ------------------------------------------------------------------
    # Serialization (snapshot → dict)
    # ------------------------------------------------------------------

    def to_dict(self, snapshot: EngineSnapshot) -> dict[str, Any]:
        """Serialize an ``EngineSnapshot`` to a JSON-compatible dict."""
        return {
            "kind": "EngineSnapshot",
            "format_version": FORMAT_VERSION,
            "phase": snapshot.phase.label,
            "administrator": snapshot.administrator,
            "voters": [self._voter_to_dict(v) for v in snapshot.voters],
            "proposals": [self._proposal_to_dict(p) for p in snapshot.proposals],
            "next_proposal_id": snapshot.next_proposal_id,
            "winning_proposal_id": snapshot.winning_proposal_id,
        }

    def _voter_to_dict(self, voter: Voter) -> dict[str, Any]:
        return {
            "principal": voter.principal,
            "is_registered": voter.is_registered,
            "has_voted": voter.has_voted,
            "voted_proposal_id": voter.voted_proposal_id,
        }

    def _proposal_to_dict(self, proposal: Proposal) -> dict[str, Any]:
        return {
            "id": proposal.proposal_id,
            "description": proposal.description,
            "vote_count": proposal.vote_count,
        }

    # ------------------------------------------------------------------
    # Deserialization (dict → snapshot)
    # ------------------------------------------------------------------

    def from_dict(self, data: Any) -> EngineSnapshot:
        """Deserialize an ``EngineSnapshot`` from a plain dict.

        Raises
        ------
        SnapshotError
            If ``data`` is not a snapshot document or a field is missing
            or has the wrong type.
        """
        if not isinstance(data, dict) or data.get("kind") != "EngineSnapshot":
            raise SnapshotError("Not an EngineSnapshot document")
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise SnapshotError(f"Unsupported snapshot format_version {version!r}")
        try:
            winner = data.get("winning_proposal_id")
            return EngineSnapshot(
                phase=Phase.from_label(_expect(data["phase"], str, "phase")),
                administrator=_expect(data["administrator"], str, "administrator"),
                voters=tuple(self._voter_from_dict(v) for v in data.get("voters") or []),
                proposals=tuple(
                    self._proposal_from_dict(p) for p in data.get("proposals") or []
                ),
                next_proposal_id=_expect(data["next_proposal_id"], int, "next_proposal_id"),
                winning_proposal_id=(
                    None if winner is None else _expect(winner, int, "winning_proposal_id")
                ),
            )
        except KeyError as exc:
            raise SnapshotError(f"Snapshot is missing field {exc.args[0]!r}") from None
        except (TypeError, ValueError) as exc:
            raise SnapshotError(f"Malformed snapshot: {exc}") from exc

    def _voter_from_dict(self, d: dict[str, Any]) -> Voter:
        return Voter(
            principal=_expect(d["principal"], str, "voter.principal"),
            is_registered=_expect(d.get("is_registered", True), bool, "voter.is_registered"),
            has_voted=_expect(d.get("has_voted", False), bool, "voter.has_voted"),
            voted_proposal_id=_expect(d.get("voted_proposal_id", 0), int, "voter.voted_proposal_id"),
        )

    def _proposal_from_dict(self, d: dict[str, Any]) -> Proposal:
        return Proposal(
            proposal_id=_expect(d["id"], int, "proposal.id"),
            description=_expect(d.get("description", ""), str, "proposal.description"),
            vote_count=_expect(d.get("vote_count", 0), int, "proposal.vote_count"),
        )

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def to_json(self, snapshot: EngineSnapshot, indent: int = 2) -> str:
        """Serialize an ``EngineSnapshot`` to a JSON string."""
        return json.dumps(self.to_dict(snapshot), indent=indent, ensure_ascii=False)

    def from_json(self, text: str) -> EngineSnapshot:
        """Deserialize an ``EngineSnapshot`` from a JSON string."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Invalid JSON: {exc}") from exc
        return self.from_dict(data)

    # ------------------------------------------------------------------
    # YAML helpers
    # ------------------------------------------------------------------

    def to_yaml(self, snapshot: EngineSnapshot) -> str:
        """Serialize an ``EngineSnapshot`` to a YAML string."""
        return yaml.safe_dump(
            self.to_dict(snapshot),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )

    def from_yaml(self, text: str) -> EngineSnapshot:
        """Deserialize an ``EngineSnapshot`` from a YAML string."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SnapshotError(f"Invalid YAML: {exc}") from exc
        return self.from_dict(data)


def _expect(value: Any, expected: type, name: str) -> Any:
    # bool is a subclass of int; a flag is never a valid id or count.
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise TypeError(f"{name} must be {expected.__name__}, got {type(value).__name__}")
    return value
